"""Message-passing adapter between a chain view (webview, TUI) and the TaskManager."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..core.errors import InvalidMessageError, PyrDevError
from ..core.task import Context, TaskChain
from ..core.task_manager import TaskExecutor, TaskManager

logger = logging.getLogger(__name__)

RESULT_PREVIEW_CHARS = 200

Message = Dict[str, Any]


def chain_summary(chain: TaskChain, progress: float) -> Dict[str, Any]:
    """Wire form of one chain for the view's list."""
    return {
        "id": chain.id,
        "name": chain.name,
        "status": chain.status.value,
        "taskCount": len(chain.tasks),
        "createdAt": chain.created_at.isoformat(),
        "completedAt": chain.completed_at.isoformat() if chain.completed_at else None,
        "progress": progress,
        "paused": chain.paused,
    }


def format_chain_details(chain: TaskChain) -> str:
    """Markdown description of a chain, its tasks and a preview of each result."""
    lines = [
        f"**Task Chain: {chain.name}**",
        "",
        f"**Status:** {chain.status.value}",
        f"**Created:** {chain.created_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"**Tasks:** {len(chain.tasks)}",
        "",
        "**Task List:**",
    ]
    for index, task in enumerate(chain.tasks, start=1):
        line = f"{index}. {task.description} ({task.status.value})"
        if task.error:
            line += f" - {task.error}"
        lines.append(line)

    if chain.results:
        lines.extend(["", "**Results:**"])
        for index, result in enumerate(chain.results, start=1):
            if isinstance(result, str):
                preview = result[:RESULT_PREVIEW_CHARS]
                if len(result) > RESULT_PREVIEW_CHARS:
                    preview += "..."
            else:
                preview = "Completed"
            lines.append(f"{index}. {preview}")

    return "\n".join(lines)


class ChainMessageHandler:
    """Turns view messages into TaskManager calls.

    Every reply is either ``{"type": "updateChains", "chains": [...],
    "stats": {...}}`` (plus ``details`` for ``viewChainDetails``) or
    ``{"type": "error", "message": ...}`` carrying the failure verbatim.
    """

    def __init__(self, task_manager: TaskManager, agent: TaskExecutor):
        self.task_manager = task_manager
        self.agent = agent
        self._handlers: Dict[str, Callable[[Message], Awaitable[Optional[Message]]]] = {
            "createChain": self._create_chain,
            "executeChain": self._execute_chain,
            "cancelChain": self._cancel_chain,
            "deleteChain": self._delete_chain,
            "duplicateChain": self._duplicate_chain,
            "viewChainDetails": self._view_chain_details,
            "refresh": self._refresh,
        }

    async def handle(self, message: Message) -> Message:
        message_type = message.get("type")
        handler = self._handlers.get(message_type)

        try:
            if handler is None:
                raise InvalidMessageError(f"Unknown message type: {message_type}")
            extra = await handler(message)
        except PyrDevError as e:
            logger.error(f"Chain view message '{message_type}' failed: {e}")
            return {"type": "error", "message": str(e)}

        reply = self.update_message()
        if extra:
            reply.update(extra)
        return reply

    def update_message(self) -> Message:
        manager = self.task_manager
        return {
            "type": "updateChains",
            "chains": [chain_summary(c, manager.progress(c.id)) for c in manager.list()],
            "stats": manager.stats().to_dict(),
        }

    @staticmethod
    def _chain_id(message: Message) -> str:
        chain_id = message.get("chainId")
        if not chain_id:
            raise InvalidMessageError(f"'{message.get('type')}' message is missing chainId")
        return chain_id

    async def _create_chain(self, message: Message) -> Message:
        raw_tasks = message.get("tasks") or []
        if not isinstance(raw_tasks, list) or not all(isinstance(t, str) for t in raw_tasks):
            raise InvalidMessageError("createChain tasks must be a list of strings")
        tasks: List[str] = [t for t in raw_tasks if t.strip()]
        if not tasks:
            raise InvalidMessageError("createChain needs at least one task description")

        context = None
        if message.get("context"):
            try:
                context = Context.model_validate(message["context"])
            except ValidationError as e:
                raise InvalidMessageError(f"Invalid chain context: {e}") from e
        chain = self.task_manager.create_chain(message.get("name") or "Untitled chain", tasks, context)
        return {"chainId": chain.id}

    async def _execute_chain(self, message: Message) -> None:
        await self.task_manager.execute(self._chain_id(message), self.agent)

    async def _cancel_chain(self, message: Message) -> None:
        if not self.task_manager.cancel(self._chain_id(message)):
            raise InvalidMessageError("Failed to cancel task chain")

    async def _delete_chain(self, message: Message) -> None:
        chain_id = self._chain_id(message)
        if not self.task_manager.delete(chain_id):
            raise InvalidMessageError(f"Task chain {chain_id} not found")

    async def _duplicate_chain(self, message: Message) -> Message:
        chain = self.task_manager.duplicate(self._chain_id(message), message.get("name"))
        return {"chainId": chain.id}

    async def _view_chain_details(self, message: Message) -> Message:
        chain = self.task_manager.require(self._chain_id(message))
        return {"details": format_chain_details(chain)}

    async def _refresh(self, message: Message) -> None:
        return None
