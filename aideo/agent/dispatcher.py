"""Maps a function name plus raw JSON arguments to one task-store effect."""
from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

from aideo.agent.messages import parse_arguments
from aideo.agent.prompts import SHORT_ID_LENGTH
from aideo.db.todo_repository import TodoRepository
from aideo.errors import InvalidArgumentError, TodoNotFoundError, UnknownFunctionError
from aideo.models.todo import (
    CreateTodoRequest,
    Priority,
    Todo,
    TodoFilter,
    TodoStatus,
    UpdateTodoRequest,
)
from aideo.observability.metrics import get_runtime_metrics

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class FunctionDispatcher:
    def __init__(self, todo_repo: TodoRepository) -> None:
        self.todo_repo = todo_repo
        self._handlers: dict[str, Handler] = {
            "add_todos": self._add_todos,
            "complete_todo": self._complete_todo,
            "delete_todo": self._delete_todo,
            "query_todos": self._query_todos,
            "get_statistics": self._get_statistics,
        }

    async def execute(self, name: str, arguments: str | None) -> dict[str, Any]:
        """Run ``name`` with the raw ``arguments`` blob.

        Malformed argument JSON is treated as an empty object. Raises
        ``UnknownFunctionError``, ``InvalidArgumentError`` or
        ``TodoNotFoundError``; effects committed before a failure stay.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownFunctionError(name)

        args = parse_arguments(arguments)
        started = time.monotonic()
        try:
            result = await handler(args)
        except Exception:
            logger.warning(
                "function_call failed",
                extra={"function_name": name, "outcome": "error"},
            )
            raise
        get_runtime_metrics().increment_function_call(name)
        logger.info(
            "function_call executed",
            extra={
                "function_name": name,
                "outcome": "ok",
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    async def _add_todos(self, args: dict[str, Any]) -> dict[str, Any]:
        items = args.get("todos")
        if not isinstance(items, list):
            raise InvalidArgumentError("todos must be an array", details={"field": "todos"})

        created: list[Todo] = []
        # Items are created one at a time; a bad item aborts the rest but
        # keeps every task already created.
        for item in items:
            text = item.get("text") if isinstance(item, dict) else None
            if not isinstance(text, str):
                raise InvalidArgumentError(
                    "text is required",
                    details={"field": "text", "created_count": len(created)},
                )
            raw_priority = item.get("priority")
            priority = Priority.parse(raw_priority) if isinstance(raw_priority, str) else None
            created.append(await self.todo_repo.create(CreateTodoRequest(text=text, priority=priority)))

        return {
            "success": True,
            "created_count": len(created),
            "message": f"Created {len(created)} task(s)",
            "todos": [todo.to_dict() for todo in created],
        }

    async def _complete_todo(self, args: dict[str, Any]) -> dict[str, Any]:
        todo = await self._resolve_target(args)
        updated = await self.todo_repo.update(
            todo.id,
            UpdateTodoRequest(completed=True, status=TodoStatus.COMPLETED),
        )
        return {
            "success": True,
            "message": f"Completed task: {updated.text}",
            "todo": updated.to_dict(),
        }

    async def _delete_todo(self, args: dict[str, Any]) -> dict[str, Any]:
        if args.get("delete_all_completed") is True:
            count = await self.todo_repo.delete_completed()
            return {
                "success": True,
                "deleted_count": count,
                "message": f"Deleted {count} completed task(s)",
            }

        todo = await self._resolve_target(args)
        await self.todo_repo.delete(todo.id)
        return {
            "success": True,
            "message": f"Deleted task: {todo.text}",
        }

    async def _query_todos(self, args: dict[str, Any]) -> dict[str, Any]:
        status = args.get("status")
        completed = args.get("completed")
        search = args.get("search")
        todo_filter = TodoFilter(
            status=TodoStatus.parse(status) if isinstance(status, str) else None,
            completed=completed if isinstance(completed, bool) else None,
            search=search if isinstance(search, str) else None,
        )
        todos = await self.todo_repo.get_all(todo_filter)
        return {
            "success": True,
            "count": len(todos),
            "todos": [todo.to_dict() for todo in todos],
        }

    async def _get_statistics(self, args: dict[str, Any]) -> dict[str, Any]:
        stats = await self.todo_repo.get_statistics()
        return {
            "success": True,
            "statistics": stats.to_dict(),
            "message": (
                f"{stats.total} task(s) in total: {stats.completed} completed, "
                f"{stats.pending} pending, {stats.in_progress} in progress"
            ),
        }

    async def _resolve_target(self, args: dict[str, Any]) -> Todo:
        """Find the task named by ``id`` (exact or short prefix) or ``search``.

        An id prefix must be at least the short-id length and match one task.

        Several search matches resolve to the first under the store's default
        ordering.
        """
        todo_id = args.get("id")
        if isinstance(todo_id, str) and todo_id:
            try:
                return await self.todo_repo.get_by_id(todo_id)
            except TodoNotFoundError:
                if len(todo_id) < SHORT_ID_LENGTH:
                    raise
                todo = await self.todo_repo.find_by_id_prefix(todo_id)
                if todo is None:
                    raise
                return todo

        search = args.get("search")
        if isinstance(search, str) and search:
            results = await self.todo_repo.search(search)
            if not results:
                raise TodoNotFoundError(search)
            return results[0]

        raise InvalidArgumentError("id or search required", details={"fields": ["id", "search"]})
