"""Typed capability registry: one async handler per task type."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from .errors import CapabilityRegistrationError, UnknownCapabilityError
from .task import Context, TaskType

CapabilityHandler = Callable[[Context, Optional[Dict[str, Any]]], Awaitable[Any]]


@dataclass(frozen=True)
class Capability:
    """A named, described async operation ``(context, params) -> result``."""
    name: str
    description: str
    handler: CapabilityHandler

    async def execute(self, context: Context, parameters: Optional[Dict[str, Any]] = None) -> Any:
        return await self.handler(context, parameters)


class CapabilityRegistry:
    """Mapping from TaskType to Capability.

    Keys are validated at registration time. Once frozen, the registry
    rejects further registration, so an agent's capability set is fixed
    after construction.
    """

    def __init__(self):
        self._capabilities: Dict[TaskType, Capability] = {}
        self._frozen = False

    def register(self, task_type: TaskType, capability: Capability) -> None:
        if self._frozen:
            raise CapabilityRegistrationError(
                f"Registry is frozen; cannot register '{task_type}'"
            )
        if not isinstance(task_type, TaskType):
            raise CapabilityRegistrationError(f"Not a task type: {task_type!r}")
        if task_type in self._capabilities:
            raise CapabilityRegistrationError(
                f"Capability already registered for '{task_type.value}'"
            )
        self._capabilities[task_type] = capability

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, task_type: TaskType) -> Capability:
        capability = self._capabilities.get(task_type)
        if capability is None:
            raise UnknownCapabilityError(getattr(task_type, "value", str(task_type)))
        return capability

    def types(self) -> List[TaskType]:
        return list(self._capabilities)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._capabilities

    def __iter__(self) -> Iterator[TaskType]:
        return iter(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)
