"""Exception hierarchy shared by the agent, the chain engine and the providers."""

from typing import Optional

CANCELLED_MESSAGE = "Cancelled by user"


class PyrDevError(Exception):
    """Base class for all pyr-dev errors."""


class ConfigurationError(PyrDevError):
    """No usable LLM provider (or an invalid setting) was configured."""


class ProviderError(PyrDevError):
    """An LLM provider call failed. Never retried by the engine."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class UnknownCapabilityError(PyrDevError):
    """A task type has no registered capability."""

    def __init__(self, task_type: str):
        super().__init__(f"Unknown task type: {task_type}")
        self.task_type = task_type


class CapabilityRegistrationError(PyrDevError):
    """A capability was registered under an invalid or already-used key."""


class ChainNotFoundError(PyrDevError):
    """No task chain with the given id exists."""

    def __init__(self, chain_id: str):
        super().__init__(f"Task chain {chain_id} not found")
        self.chain_id = chain_id


class TaskCancelledError(PyrDevError):
    """Raised for work whose chain was cancelled while it was in flight."""

    def __init__(self, message: str = CANCELLED_MESSAGE):
        super().__init__(message)


class MissingContextError(PyrDevError):
    """A capability was invoked without the context it needs (e.g. no code)."""


class InvalidTransitionError(PyrDevError):
    """A task or chain was asked to leave a terminal state."""


class InvalidMessageError(PyrDevError):
    """A view message was malformed or of an unknown type."""
