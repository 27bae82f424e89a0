"""Task chain engine: create, execute, cancel and report on task chains."""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import CANCELLED_MESSAGE, ChainNotFoundError, TaskCancelledError
from .task import Context, Task, TaskChain, TaskStatus, TaskType, infer_task_type, new_chain_id
from ..utils.rich_logging import ContextLogger

logger = logging.getLogger(__name__)


class TaskExecutor(Protocol):
    """Anything that can run a single task (normally a BaseAgent)."""

    async def execute_task(self, task: Task, parameters: Optional[Dict[str, Any]] = None) -> Any:
        ...


@dataclass
class ChainStats:
    """Chain counts by status."""
    total: int = 0
    pending: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class TaskManager:
    """Owns every task chain for the lifetime of the process.

    Tasks within a chain run strictly in order, one provider call at a time;
    separate chains may run concurrently on the same event loop.

    Cancellation is cooperative. ``cancel`` finalizes the chain immediately
    and bumps its epoch; an execution that resumes with a stale epoch drops
    whatever its in-flight task produced and raises ``TaskCancelledError``.
    """

    def __init__(self):
        self._chains: Dict[str, TaskChain] = {}
        self._initial_contexts: Dict[str, Context] = {}
        self._active_tasks: Dict[str, Task] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._resume_events: Dict[str, asyncio.Event] = {}

    # -- lifecycle -------------------------------------------------------

    def create_chain(
        self,
        name: str,
        task_descriptions: Sequence[str],
        initial_context: Optional[Context] = None,
    ) -> TaskChain:
        """Create a pending chain with one task per description.

        Each task gets its own copy of ``initial_context``; task types are
        inferred from the descriptions.
        """
        chain_id = new_chain_id()
        base = initial_context or Context()
        tasks = [
            Task(
                id=f"{chain_id}-task-{index}",
                type=infer_task_type(description),
                description=description,
                context=base.model_copy(deep=True),
            )
            for index, description in enumerate(task_descriptions)
        ]

        chain = TaskChain(id=chain_id, name=name, tasks=tasks)
        self._chains[chain_id] = chain
        self._initial_contexts[chain_id] = base.model_copy(deep=True)
        logger.info(
            f"Created chain {chain_id} '{name}': "
            f"{', '.join(t.type.value for t in tasks) or 'no tasks'}"
        )
        return chain

    async def execute(self, chain_id: str, agent: TaskExecutor) -> List[Any]:
        """Run a pending chain to completion.

        Returns:
            Results in task order

        Raises:
            ChainNotFoundError: Unknown chain id
            InvalidTransitionError: Chain is not pending
            TaskCancelledError: Chain was cancelled while executing
            PyrDevError: The first task failure, after marking the chain failed
        """
        chain = self.require(chain_id)
        lock = self._lock_for(chain_id)

        async with lock:
            chain.mark_running()
            epoch = chain.epoch

        log = ContextLogger(logger, chain_id)
        log.chain_started(chain.name, len(chain.tasks))
        started = time.monotonic()
        results: List[Any] = []

        try:
            for index, task in enumerate(chain.tasks):
                await self._wait_if_paused(chain, log)
                self._ensure_current(chain, epoch)

                context = task.context.merge(previous_results=list(chain.results))
                if task.type == TaskType.GENERAL and not context.project_context:
                    context = context.merge(project_context=task.description)
                task.context = context

                self._active_tasks[task.id] = task
                log.task_started(index, task.type.value, task.description)
                task_started = time.monotonic()
                try:
                    result = await agent.execute_task(task)
                finally:
                    self._active_tasks.pop(task.id, None)

                async with lock:
                    self._ensure_current(chain, epoch)
                    chain.results.append(result)
                results.append(result)
                log.task_completed(time.monotonic() - task_started)

        except TaskCancelledError as e:
            async with lock:
                if chain.epoch != epoch:
                    log.warning("Chain was cancelled; in-flight outcome discarded")
                    raise
                # Raised by the task itself, not by cancel(): an ordinary failure
                chain.finish(TaskStatus.FAILED)
            log.task_failed(str(e))
            log.chain_finished(TaskStatus.FAILED.value, time.monotonic() - started)
            raise
        except asyncio.CancelledError:
            self.cancel(chain_id)
            raise
        except Exception as e:
            async with lock:
                if chain.epoch != epoch:
                    log.warning(f"Chain was cancelled; dropping late failure: {e}")
                    raise TaskCancelledError() from e
                chain.finish(TaskStatus.FAILED)
            log.task_failed(str(e))
            log.chain_finished(TaskStatus.FAILED.value, time.monotonic() - started)
            raise

        async with lock:
            self._ensure_current(chain, epoch)
            chain.finish(TaskStatus.COMPLETED)
        log.chain_finished(TaskStatus.COMPLETED.value, time.monotonic() - started)
        return results

    def cancel(self, chain_id: str) -> bool:
        """Cancel a running chain. False (and no side effect) otherwise."""
        chain = self._chains.get(chain_id)
        if chain is None or chain.status != TaskStatus.RUNNING:
            return False

        chain.epoch += 1
        for task in chain.tasks:
            if task.status == TaskStatus.RUNNING:
                task.mark_failed(CANCELLED_MESSAGE)
        chain.finish(TaskStatus.FAILED)

        # Wake a paused executor so it can observe the new epoch
        event = self._resume_events.get(chain_id)
        if event is not None:
            event.set()

        logger.info(f"Cancelled chain {chain_id} '{chain.name}'")
        return True

    def delete(self, chain_id: str) -> bool:
        """Forget a chain; a running one is cancelled first."""
        chain = self._chains.get(chain_id)
        if chain is None:
            return False

        # Wakes a paused executor, which then sees the bumped epoch
        self.cancel(chain_id)
        del self._chains[chain_id]

        self._initial_contexts.pop(chain_id, None)
        self._locks.pop(chain_id, None)
        self._resume_events.pop(chain_id, None)
        logger.info(f"Deleted chain {chain_id} '{chain.name}'")
        return True

    def duplicate(self, chain_id: str, new_name: Optional[str] = None) -> TaskChain:
        """New pending chain with the same descriptions and initial context."""
        source = self.require(chain_id)
        return self.create_chain(
            new_name or f"{source.name} (Copy)",
            [task.description for task in source.tasks],
            self._initial_contexts.get(chain_id),
        )

    def pause(self, chain_id: str) -> bool:
        """Hold a running chain before its next task starts.

        The task currently in flight is not interrupted.
        """
        chain = self._chains.get(chain_id)
        if chain is None or chain.status != TaskStatus.RUNNING or chain.paused:
            return False

        chain.paused = True
        self._resume_events.setdefault(chain_id, asyncio.Event()).clear()
        logger.info(f"Paused chain {chain_id}")
        return True

    def resume(self, chain_id: str) -> bool:
        chain = self._chains.get(chain_id)
        if chain is None or not chain.paused:
            return False

        chain.paused = False
        event = self._resume_events.get(chain_id)
        if event is not None:
            event.set()
        logger.info(f"Resumed chain {chain_id}")
        return True

    # -- queries ---------------------------------------------------------

    def get(self, chain_id: str) -> Optional[TaskChain]:
        return self._chains.get(chain_id)

    def require(self, chain_id: str) -> TaskChain:
        chain = self._chains.get(chain_id)
        if chain is None:
            raise ChainNotFoundError(chain_id)
        return chain

    def snapshot(self, chain_id: str) -> Optional[TaskChain]:
        chain = self._chains.get(chain_id)
        return chain.snapshot() if chain is not None else None

    def list(self) -> List[TaskChain]:
        """All chains, most recently created first (ties: most recently added first)."""
        newest_added_first = reversed(list(self._chains.values()))
        return sorted(newest_added_first, key=lambda c: c.created_at, reverse=True)

    def list_active(self) -> List[TaskChain]:
        return [c for c in self.list() if c.status == TaskStatus.RUNNING]

    def list_completed(self) -> List[TaskChain]:
        return [c for c in self.list() if c.status == TaskStatus.COMPLETED]

    def active_tasks(self) -> List[Task]:
        return list(self._active_tasks.values())

    def stats(self) -> ChainStats:
        stats = ChainStats(total=len(self._chains))
        for chain in self._chains.values():
            setattr(stats, chain.status.value, getattr(stats, chain.status.value) + 1)
        return stats

    def progress(self, chain_id: str) -> float:
        chain = self._chains.get(chain_id)
        return chain.progress if chain is not None else 0.0

    # -- internals -------------------------------------------------------

    def _lock_for(self, chain_id: str) -> asyncio.Lock:
        return self._locks.setdefault(chain_id, asyncio.Lock())

    @staticmethod
    def _ensure_current(chain: TaskChain, epoch: int) -> None:
        if chain.epoch != epoch:
            raise TaskCancelledError()

    async def _wait_if_paused(self, chain: TaskChain, log: ContextLogger) -> None:
        if not chain.paused:
            return
        event = self._resume_events.setdefault(chain.id, asyncio.Event())
        log.info("Paused; waiting for resume")
        await event.wait()
