"""Task, context and task-chain models shared by the agent and the chain engine."""

import random
import string
import time
from datetime import UTC, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_serializer

from .errors import InvalidTransitionError


class TaskStatus(str, Enum):
    """Lifecycle states shared by tasks and chains."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskType(str, Enum):
    """Closed set of task kinds; each maps to one capability."""
    ANALYZE = "analyze"
    FIX = "fix"
    GENERATE = "generate"
    EXPLAIN = "explain"
    CHAIN = "chain"
    GENERAL = "general"


# Keyword groups checked in order; first hit wins.
_TYPE_KEYWORDS = (
    (TaskType.ANALYZE, ("analyze", "check", "review")),
    (TaskType.FIX, ("fix", "correct", "repair")),
    (TaskType.GENERATE, ("generate", "create", "write")),
    (TaskType.EXPLAIN, ("explain", "describe", "clarify")),
)


def infer_task_type(description: str) -> TaskType:
    """Classify a free-form task description by keyword."""
    lowered = description.lower()
    for task_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return task_type
    return TaskType.GENERAL


def _now() -> datetime:
    return datetime.now(UTC)


def _random_suffix(length: int = 9) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choices(alphabet, k=length))


def new_chain_id() -> str:
    return f"chain-{int(time.time() * 1000)}-{_random_suffix()}"


def new_task_id(prefix: str) -> str:
    """Synthetic id for one-off tasks created by the agent's high-level operations."""
    return f"{prefix}-{int(time.time() * 1000)}"


class Context(BaseModel):
    """What code or situation an operation is about."""

    code: Optional[str] = None
    language: Optional[str] = None
    selection: Optional[str] = None
    file_path: Optional[str] = None
    project_context: Optional[str] = None
    previous_results: List[Any] = Field(default_factory=list)

    def merge(self, **overrides: Any) -> "Context":
        """Shallow merge: overrides win, previous_results is replaced wholesale."""
        return self.model_copy(update=overrides)


class Task(BaseModel):
    """One unit of work executed by an agent capability."""

    id: str
    type: TaskType
    description: str
    context: Context = Field(default_factory=Context)
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @field_serializer("created_at", "completed_at")
    def serialize_datetime(self, v: Optional[datetime]) -> Optional[str]:
        return v.isoformat() if v else None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _ensure_not_terminal(self, target: TaskStatus) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Task {self.id} is {self.status.value}; cannot move to {target.value}"
            )

    def mark_running(self) -> None:
        self._ensure_not_terminal(TaskStatus.RUNNING)
        self.status = TaskStatus.RUNNING

    def mark_completed(self, result: Any) -> None:
        if self.status != TaskStatus.RUNNING:
            raise InvalidTransitionError(
                f"Task {self.id} is {self.status.value}; only running tasks can complete"
            )
        self.result = result
        self.status = TaskStatus.COMPLETED
        self.completed_at = _now()

    def mark_failed(self, error: str) -> None:
        self._ensure_not_terminal(TaskStatus.FAILED)
        self.error = error
        self.status = TaskStatus.FAILED
        self.completed_at = _now()


class TaskChain(BaseModel):
    """Ordered, named group of tasks executed front to back."""

    id: str
    name: str
    tasks: List[Task] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None
    # Parallel to the tasks' own .result fields; appended on success only.
    results: List[Any] = Field(default_factory=list)
    # Generation token, bumped by cancellation so late results can be recognised.
    epoch: int = 0
    paused: bool = False

    @field_serializer("created_at", "completed_at")
    def serialize_datetime(self, v: Optional[datetime]) -> Optional[str]:
        return v.isoformat() if v else None

    @property
    def completed_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == TaskStatus.COMPLETED)

    @property
    def progress(self) -> float:
        if not self.tasks:
            return 0.0
        return self.completed_task_count / len(self.tasks)

    def mark_running(self) -> None:
        if self.status != TaskStatus.PENDING:
            raise InvalidTransitionError(
                f"Task chain {self.id} is {self.status.value}; only pending chains can run"
            )
        self.status = TaskStatus.RUNNING

    def finish(self, status: TaskStatus) -> None:
        if not status.is_terminal:
            raise InvalidTransitionError(f"{status.value} is not a terminal chain status")
        self.status = status
        self.paused = False
        self.completed_at = _now()

    def snapshot(self) -> "TaskChain":
        """Deep copy safe to hand to observers."""
        return self.model_copy(deep=True)
