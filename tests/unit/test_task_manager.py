"""Tests for the TaskManager chain engine."""

import asyncio
import re
from unittest.mock import AsyncMock

import pytest

from pyr_dev.analysis.models import AnalysisResult
from pyr_dev.core.code_agent import CodeAgent
from pyr_dev.core.errors import (
    CANCELLED_MESSAGE,
    ChainNotFoundError,
    InvalidTransitionError,
    ProviderError,
    TaskCancelledError,
)
from pyr_dev.core.task import Context, TaskStatus, TaskType
from pyr_dev.core.task_manager import ChainStats, TaskManager

from fakes import make_provider


class RecordingAgent:
    """Executor double that completes tasks the way BaseAgent does.

    ``fail_at`` makes that task index raise; ``gate`` holds every task until set.
    """

    def __init__(self, fail_at=None, gate=None, on_start=None):
        self.fail_at = fail_at
        self.gate = gate
        self.on_start = on_start
        self.seen = []

    async def execute_task(self, task, parameters=None):
        task.mark_running()
        index = len(self.seen)
        self.seen.append((task.id, list(task.context.previous_results)))
        if self.on_start:
            self.on_start(task)
        if self.gate is not None:
            await self.gate.wait()
        if task.status != TaskStatus.RUNNING:
            raise TaskCancelledError(task.error)
        if index == self.fail_at:
            task.mark_failed("provider down")
            raise ProviderError("provider down")
        result = f"result-{index}"
        task.mark_completed(result)
        return result


@pytest.fixture
def manager():
    return TaskManager()


class TestCreateChain:
    def test_builds_pending_tasks_with_inferred_types(self, manager):
        chain = manager.create_chain("demo", ["Analyze the code", "Fix the code", "Do something"])

        assert re.fullmatch(r"chain-\d+-[a-z0-9]{9}", chain.id)
        assert chain.status == TaskStatus.PENDING
        assert [t.id for t in chain.tasks] == [f"{chain.id}-task-{i}" for i in range(3)]
        assert [t.type for t in chain.tasks] == [TaskType.ANALYZE, TaskType.FIX, TaskType.GENERAL]
        assert all(t.status == TaskStatus.PENDING for t in chain.tasks)
        assert manager.get(chain.id) is chain

    def test_each_task_gets_its_own_context(self, manager):
        initial = Context(code="x=1", language="python")
        chain = manager.create_chain("demo", ["a", "b"], initial)

        chain.tasks[0].context.code = "changed"
        assert chain.tasks[1].context.code == "x=1"
        assert initial.code == "x=1"

    def test_empty_chain_is_allowed(self, manager):
        chain = manager.create_chain("", [])
        assert chain.tasks == []
        assert manager.progress(chain.id) == 0.0


class TestExecute:
    @pytest.mark.asyncio
    async def test_success(self, manager):
        chain = manager.create_chain("demo", ["one", "two", "three"])
        agent = RecordingAgent()

        results = await manager.execute(chain.id, agent)

        assert results == ["result-0", "result-1", "result-2"]
        assert chain.results == results
        assert chain.status == TaskStatus.COMPLETED
        assert chain.completed_at is not None
        assert manager.progress(chain.id) == 1.0
        assert manager.active_tasks() == []

    @pytest.mark.asyncio
    async def test_previous_results_threaded_in_order(self, manager):
        chain = manager.create_chain("demo", ["one", "two", "three"])
        agent = RecordingAgent()

        await manager.execute(chain.id, agent)

        assert [prev for _, prev in agent.seen] == [[], ["result-0"], ["result-0", "result-1"]]

    @pytest.mark.asyncio
    async def test_failure_at_task_k(self, manager):
        chain = manager.create_chain("demo", ["t0", "t1", "t2", "t3"])

        with pytest.raises(ProviderError, match="provider down"):
            await manager.execute(chain.id, RecordingAgent(fail_at=2))

        assert chain.status == TaskStatus.FAILED
        assert chain.completed_at is not None
        assert [t.status for t in chain.tasks] == [
            TaskStatus.COMPLETED, TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.PENDING,
        ]
        assert chain.tasks[2].error
        assert chain.results == ["result-0", "result-1"]
        assert manager.active_tasks() == []

    @pytest.mark.asyncio
    async def test_cancellation_error_raised_by_a_task_fails_the_chain(self, manager, analyzer):
        provider = make_provider()
        provider.generate = AsyncMock(side_effect=TaskCancelledError("inner operation cancelled"))
        agent = CodeAgent(provider, analyzer)
        chain = manager.create_chain("demo", ["Explain the code", "Describe it"], Context(code="x = 1"))

        with pytest.raises(TaskCancelledError, match="inner operation cancelled"):
            await manager.execute(chain.id, agent)

        assert chain.status == TaskStatus.FAILED
        assert chain.completed_at is not None
        assert [t.status for t in chain.tasks] == [TaskStatus.FAILED, TaskStatus.PENDING]
        assert chain.tasks[0].error == "inner operation cancelled"
        assert manager.list_active() == []

    @pytest.mark.asyncio
    async def test_results_never_exceed_completed_tasks(self, manager):
        chain = manager.create_chain("demo", ["a", "b", "c"])
        observations = []

        def observe(task):
            observations.append((len(chain.results), chain.completed_task_count))

        await manager.execute(chain.id, RecordingAgent(on_start=observe))

        assert all(results <= completed for results, completed in observations)
        assert 0.0 <= manager.progress(chain.id) <= 1.0

    @pytest.mark.asyncio
    async def test_unknown_chain(self, manager):
        with pytest.raises(ChainNotFoundError, match="Task chain nope not found"):
            await manager.execute("nope", RecordingAgent())

    @pytest.mark.asyncio
    async def test_terminal_chain_cannot_be_re_executed(self, manager):
        chain = manager.create_chain("demo", ["one"])
        await manager.execute(chain.id, RecordingAgent())

        with pytest.raises(InvalidTransitionError):
            await manager.execute(chain.id, RecordingAgent())
        assert chain.results == ["result-0"]

    @pytest.mark.asyncio
    async def test_empty_chain_completes_immediately(self, manager):
        chain = manager.create_chain("empty", [])

        assert await manager.execute(chain.id, RecordingAgent()) == []
        assert chain.status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_general_task_receives_description_as_project_context(self, manager):
        chain = manager.create_chain("demo", ["Do something", "Summarize everything"],
                                     Context(project_context=None))
        await manager.execute(chain.id, RecordingAgent())

        assert [t.context.project_context for t in chain.tasks] == ["Do something", "Summarize everything"]

    @pytest.mark.asyncio
    async def test_concurrent_chains_do_not_interfere(self, manager):
        first = manager.create_chain("first", ["a", "b"])
        second = manager.create_chain("second", ["c"])

        await asyncio.gather(
            manager.execute(first.id, RecordingAgent()),
            manager.execute(second.id, RecordingAgent()),
        )

        assert first.results == ["result-0", "result-1"]
        assert second.results == ["result-0"]


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_running_chain_discards_late_result(self, manager):
        gate = asyncio.Event()
        chain = manager.create_chain("demo", ["one", "two"])
        running = asyncio.create_task(manager.execute(chain.id, RecordingAgent(gate=gate)))
        await asyncio.sleep(0)

        assert chain.status == TaskStatus.RUNNING
        assert [t.id for t in manager.active_tasks()] == [chain.tasks[0].id]
        assert manager.list_active() == [chain]

        assert manager.cancel(chain.id) is True
        assert chain.status == TaskStatus.FAILED
        assert chain.completed_at is not None
        assert chain.tasks[0].status == TaskStatus.FAILED
        assert chain.tasks[0].error == CANCELLED_MESSAGE
        assert chain.tasks[1].status == TaskStatus.PENDING

        gate.set()
        with pytest.raises(TaskCancelledError):
            await running

        assert chain.results == []
        assert chain.status == TaskStatus.FAILED
        assert chain.tasks[0].result is None
        assert manager.active_tasks() == []

    @pytest.mark.asyncio
    async def test_late_result_from_agent_ignoring_status_is_still_discarded(self, manager):
        gate = asyncio.Event()
        chain = manager.create_chain("demo", ["one", "two"])

        async def careless(task, parameters=None):
            task.status = TaskStatus.RUNNING
            await gate.wait()
            return "stray"

        agent = AsyncMock()
        agent.execute_task.side_effect = careless
        running = asyncio.create_task(manager.execute(chain.id, agent))
        await asyncio.sleep(0)

        manager.cancel(chain.id)
        gate.set()
        with pytest.raises(TaskCancelledError):
            await running

        assert chain.results == []
        assert agent.execute_task.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_pending_completed_or_missing_chain_is_noop(self, manager):
        pending = manager.create_chain("pending", ["a"])
        done = manager.create_chain("done", ["a"])
        await manager.execute(done.id, RecordingAgent())
        before = (pending.snapshot(), done.snapshot())

        assert manager.cancel(pending.id) is False
        assert manager.cancel(done.id) is False
        assert manager.cancel("missing") is False
        assert (pending.snapshot(), done.snapshot()) == before


class TestPauseResume:
    @pytest.mark.asyncio
    async def test_pause_holds_next_task_until_resume(self, manager):
        gate = asyncio.Event()
        chain = manager.create_chain("demo", ["one", "two"])
        agent = RecordingAgent(gate=gate)
        running = asyncio.create_task(manager.execute(chain.id, agent))
        await asyncio.sleep(0)

        assert manager.pause(chain.id) is True
        assert manager.pause(chain.id) is False
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

        assert chain.tasks[0].status == TaskStatus.COMPLETED
        assert chain.tasks[1].status == TaskStatus.PENDING
        assert len(agent.seen) == 1

        assert manager.resume(chain.id) is True
        assert await running == ["result-0", "result-1"]
        assert manager.resume(chain.id) is False

    @pytest.mark.asyncio
    async def test_cancel_releases_paused_chain(self, manager):
        gate = asyncio.Event()
        chain = manager.create_chain("demo", ["one", "two"])
        running = asyncio.create_task(manager.execute(chain.id, RecordingAgent(gate=gate)))
        await asyncio.sleep(0)

        manager.pause(chain.id)
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert manager.cancel(chain.id) is True

        with pytest.raises(TaskCancelledError):
            await running
        assert chain.results == ["result-0"]
        assert chain.tasks[1].status == TaskStatus.PENDING
        assert chain.paused is False

    @pytest.mark.asyncio
    async def test_deleting_paused_chain_releases_executor(self, manager):
        gate = asyncio.Event()
        chain = manager.create_chain("demo", ["one", "two"])
        running = asyncio.create_task(manager.execute(chain.id, RecordingAgent(gate=gate)))
        await asyncio.sleep(0)

        manager.pause(chain.id)
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert manager.delete(chain.id) is True

        with pytest.raises(TaskCancelledError):
            await asyncio.wait_for(running, timeout=1.0)
        assert manager.get(chain.id) is None
        assert chain.status == TaskStatus.FAILED
        assert chain.tasks[1].status == TaskStatus.PENDING

    def test_pause_requires_running_chain(self, manager):
        chain = manager.create_chain("demo", ["one"])
        assert manager.pause(chain.id) is False
        assert manager.pause("missing") is False
        assert manager.resume(chain.id) is False


class TestQueries:
    def test_list_is_newest_first(self, manager):
        first = manager.create_chain("first", ["a"])
        second = manager.create_chain("second", ["a"])
        second.created_at = first.created_at.replace(year=first.created_at.year + 1)

        assert manager.list() == [second, first]

    def test_list_breaks_timestamp_ties_by_creation_order(self, manager):
        chains = [manager.create_chain(f"chain-{i}", ["a"]) for i in range(3)]
        for chain in chains[1:]:
            chain.created_at = chains[0].created_at

        assert manager.list() == list(reversed(chains))

    @pytest.mark.asyncio
    async def test_stats_and_filters(self, manager):
        manager.create_chain("pending", ["a"])
        done = manager.create_chain("done", ["a"])
        failed = manager.create_chain("failed", ["a"])
        await manager.execute(done.id, RecordingAgent())
        with pytest.raises(ProviderError):
            await manager.execute(failed.id, RecordingAgent(fail_at=0))

        assert manager.stats() == ChainStats(total=3, pending=1, running=0, completed=1, failed=1)
        assert manager.stats().to_dict()["failed"] == 1
        assert manager.list_completed() == [done]
        assert manager.list_active() == []

    def test_get_and_require(self, manager):
        chain = manager.create_chain("demo", ["a"])
        assert manager.get("missing") is None
        assert manager.require(chain.id) is chain
        with pytest.raises(ChainNotFoundError):
            manager.require("missing")

    def test_repeated_snapshots_are_equal(self, manager):
        chain = manager.create_chain("demo", ["a", "b"], Context(code="x"))
        assert manager.snapshot(chain.id) == manager.snapshot(chain.id)
        assert manager.snapshot("missing") is None

    def test_progress_of_unknown_chain(self, manager):
        assert manager.progress("missing") == 0.0

    def test_delete(self, manager):
        chain = manager.create_chain("demo", ["a"])
        assert manager.delete(chain.id) is True
        assert manager.get(chain.id) is None
        assert manager.delete(chain.id) is False

    @pytest.mark.asyncio
    async def test_duplicate_uses_original_descriptions_and_context(self, manager):
        chain = manager.create_chain("demo", ["Analyze the code", "Do something"], Context(code="x=1"))
        await manager.execute(chain.id, RecordingAgent())

        copy = manager.duplicate(chain.id)

        assert copy.id != chain.id
        assert copy.name == "demo (Copy)"
        assert copy.status == TaskStatus.PENDING
        assert [t.description for t in copy.tasks] == ["Analyze the code", "Do something"]
        assert all(t.context.previous_results == [] for t in copy.tasks)
        assert copy.tasks[1].context.project_context is None
        assert copy.tasks[0].context.code == "x=1"
        assert manager.duplicate(chain.id, "renamed").name == "renamed"


@pytest.mark.asyncio
async def test_demo_scenario_with_code_agent(analyzer):
    provider = make_provider("Here is the fixed code")
    agent = CodeAgent(provider, analyzer)
    manager = TaskManager()
    chain = manager.create_chain("demo", ["Analyze the code", "Fix the code"], Context(code="x=1"))

    results = await manager.execute(chain.id, agent)

    assert len(results) == 2
    assert chain.status == TaskStatus.COMPLETED
    assert [t.type for t in chain.tasks] == [TaskType.ANALYZE, TaskType.FIX]
    analysis = results[0]
    assert isinstance(analysis["static_analysis"], AnalysisResult)
    assert chain.tasks[1].context.previous_results == [analysis]
    assert results[1] == "Here is the fixed code"
    assert provider.generate.await_count == 2
