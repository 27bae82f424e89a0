"""Agent base class: single-task dispatch, sequence execution, conversation window."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .capabilities import CapabilityRegistry
from .config import PyrDevConfig
from .errors import CANCELLED_MESSAGE, ProviderError, PyrDevError, TaskCancelledError
from .task import Task, TaskStatus, TaskType
from ..llm.base import LLMMessage, LLMOptions, LLMProvider, Role

logger = logging.getLogger(__name__)

MAX_CONVERSATION_TURNS = 20
MAX_TASK_HISTORY = 100


class BaseAgent(ABC):
    """Executes tasks by dispatching on their type into a capability registry.

    Subclasses populate the registry in ``_register_capabilities``; the
    registry is frozen as soon as construction finishes.

    Task state is only ever written while the task is ``running``. If a task
    was moved to a terminal state by someone else while its capability was
    in flight (chain cancellation), the late outcome is dropped and
    ``TaskCancelledError`` is raised instead.
    """

    def __init__(self, provider: LLMProvider, config: Optional[PyrDevConfig] = None):
        self.provider = provider
        self.config = config
        self.capabilities = CapabilityRegistry()
        self._conversation: List[LLMMessage] = []
        self._task_history: List[Task] = []

        self._register_capabilities()
        self.capabilities.freeze()

    @abstractmethod
    def _register_capabilities(self) -> None:
        """Register one capability per supported task type."""

    @property
    def llm_options(self) -> Optional[LLMOptions]:
        if self.config is None:
            return None
        return LLMOptions(
            max_tokens=self.config.max_tokens,
            temperature=self.config.assistant.temperature,
            top_p=self.config.assistant.top_p,
        )

    async def _complete(self, messages: Sequence[LLMMessage], options: Optional[LLMOptions] = None) -> str:
        response = await self.provider.generate(messages, options or self.llm_options)
        return response.content

    async def execute_task(self, task: Task, parameters: Optional[Dict[str, Any]] = None) -> Any:
        """Run one task through its capability.

        Args:
            task: Task to execute; its status/result/error are updated in place
            parameters: Out-of-band parameters for the capability (never stored on the task)

        Returns:
            The capability's result

        Raises:
            UnknownCapabilityError: No capability for the task type
            TaskCancelledError: The task was finalized elsewhere while in flight
            PyrDevError: Any failure; non-pyr-dev errors are wrapped in ProviderError
        """
        task.mark_running()
        self._remember(task)
        logger.debug(f"Executing task {task.id} ({task.type.value}): {task.description}")

        try:
            capability = self.capabilities.get(task.type)
            result = await capability.execute(task.context, parameters)
        except PyrDevError as e:
            self._fail(task, e)
            raise
        except Exception as e:
            self._fail(task, e)
            raise ProviderError(str(e) or type(e).__name__) from e

        if task.status != TaskStatus.RUNNING:
            logger.info(f"Dropping late result for task {task.id}; task is {task.status.value}")
            raise TaskCancelledError(task.error or CANCELLED_MESSAGE)

        task.mark_completed(result)
        return result

    def _fail(self, task: Task, error: Exception) -> None:
        message = str(error) or type(error).__name__
        if task.status != TaskStatus.RUNNING:
            logger.info(f"Dropping late failure for task {task.id} ({task.status.value}): {message}")
            raise TaskCancelledError(task.error or CANCELLED_MESSAGE) from error

        task.mark_failed(message)
        logger.warning(f"Task {task.id} ({task.type.value}) failed: {message}")

    def _remember(self, task: Task) -> None:
        self._task_history.append(task)
        if len(self._task_history) > MAX_TASK_HISTORY:
            self._task_history = self._task_history[-MAX_TASK_HISTORY:]

    async def execute_chain_tasks(
        self,
        tasks: Sequence[Task],
        parameters: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    ) -> List[Any]:
        """Run tasks in order, feeding each the results of the ones before it.

        There is no chain entity here: the first failure propagates and the
        remaining tasks stay ``pending``. ``parameters[i]``, if given, is
        passed to task ``i``'s capability.
        """
        results: List[Any] = []
        for index, task in enumerate(tasks):
            task.context = task.context.merge(previous_results=list(results))
            params = parameters[index] if parameters is not None else None
            results.append(await self.execute_task(task, params))
        return results

    def add_to_conversation(self, role: Role, content: str) -> None:
        self._conversation.append(LLMMessage(role=role, content=content))
        if len(self._conversation) > MAX_CONVERSATION_TURNS:
            self._conversation = self._conversation[-MAX_CONVERSATION_TURNS:]

    def clear_conversation(self) -> None:
        self._conversation = []

    def get_conversation_history(self) -> List[LLMMessage]:
        return list(self._conversation)

    def get_capabilities(self) -> List[TaskType]:
        return self.capabilities.types()

    def has_capability(self, task_type: TaskType) -> bool:
        return task_type in self.capabilities

    def get_task_history(self) -> List[Task]:
        return list(self._task_history)
