"""Core models, agents and the task chain engine."""

from .task import Context, Task, TaskChain, TaskStatus, TaskType, infer_task_type
from .config import PyrDevConfig, load_config, validate_configuration
from .capabilities import Capability, CapabilityRegistry
from .agent import BaseAgent
from .code_agent import CodeAgent
from .task_manager import ChainStats, TaskManager

__all__ = [
    "Context",
    "Task",
    "TaskChain",
    "TaskStatus",
    "TaskType",
    "infer_task_type",
    "PyrDevConfig",
    "load_config",
    "validate_configuration",
    "Capability",
    "CapabilityRegistry",
    "BaseAgent",
    "CodeAgent",
    "ChainStats",
    "TaskManager",
]
