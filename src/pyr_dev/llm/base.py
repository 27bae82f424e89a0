"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, List, Literal, Optional, Sequence

Role = Literal["system", "user", "assistant"]


@dataclass
class LLMMessage:
    """One role-tagged turn sent to a provider."""
    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMOptions:
    """Per-request generation settings. None = provider/config default."""
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None


@dataclass
class TokenUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str
    usage: Optional[TokenUsage] = None
    model_used: Optional[str] = None
    latency_ms: float = 0.0


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations raise ``ProviderError`` on any backend failure; retry and
    backoff, if any, live here rather than in the agent or chain engine.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. "Azure OpenAI")."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the provider has the credentials it needs."""

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> LLMResponse:
        """Send a request/response completion."""

    @abstractmethod
    def stream(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> AsyncIterator[str]:
        """Yield response text chunks. The iterator is finite and not restartable."""


def messages_to_dicts(messages: Sequence[LLMMessage]) -> List[dict]:
    return [m.to_dict() for m in messages]
