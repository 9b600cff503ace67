from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from aideo.db.connection import ConnectionPool
from aideo.errors import TodoNotFoundError
from aideo.models.todo import (
    UNSET,
    CreateTodoRequest,
    Priority,
    Todo,
    TodoFilter,
    TodoStatistics,
    TodoStatus,
    UpdateTodoRequest,
)

_COLUMNS = "id, text, completed, status, priority, due_date, tags, created_at, updated_at"
# Incomplete first, newest first; rowid breaks ties between same-instant inserts.
_DEFAULT_ORDER = "ORDER BY completed ASC, created_at DESC, rowid DESC"


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _row_to_todo(row: aiosqlite.Row) -> Todo:
    try:
        tags = json.loads(row["tags"] or "[]")
    except (json.JSONDecodeError, TypeError):
        tags = []
    if not isinstance(tags, list):
        tags = []
    return Todo(
        id=str(row["id"]),
        text=str(row["text"]),
        completed=bool(row["completed"]),
        status=TodoStatus.parse(row["status"]),
        priority=Priority.from_int(row["priority"]),
        due_date=row["due_date"],
        tags=[str(tag) for tag in tags],
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


class TodoRepository:
    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def create(self, request: CreateTodoRequest) -> Todo:
        now = _now()
        todo = Todo(
            id=str(uuid.uuid4()),
            text=request.text,
            completed=False,
            status=TodoStatus.PENDING,
            priority=request.priority or Priority.LOW,
            due_date=request.due_date,
            tags=list(request.tags or []),
            created_at=now,
            updated_at=now,
        )
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"INSERT INTO todos ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    todo.id,
                    todo.text,
                    0,
                    todo.status.value,
                    todo.priority.as_int(),
                    todo.due_date,
                    json.dumps(todo.tags, ensure_ascii=False),
                    todo.created_at,
                    todo.updated_at,
                ),
            )
            await conn.commit()
        return todo

    async def batch_create(self, requests: list[CreateTodoRequest]) -> list[Todo]:
        # Each create commits on its own: a failure leaves the earlier ones in place.
        created: list[Todo] = []
        for request in requests:
            created.append(await self.create(request))
        return created

    async def get_all(self, todo_filter: TodoFilter | None = None) -> list[Todo]:
        sql = f"SELECT {_COLUMNS} FROM todos WHERE 1=1"
        params: list[Any] = []

        if todo_filter is not None:
            if todo_filter.status is not None:
                sql += " AND status = ?"
                params.append(todo_filter.status.value)
            if todo_filter.completed is not None:
                sql += " AND completed = ?"
                params.append(1 if todo_filter.completed else 0)
            if todo_filter.priority is not None:
                sql += " AND priority = ?"
                params.append(todo_filter.priority.as_int())
            if todo_filter.search:
                sql += " AND text LIKE ? ESCAPE '\\'"
                params.append(_like_pattern(todo_filter.search))
            if todo_filter.tag:
                sql += " AND tags LIKE ? ESCAPE '\\'"
                params.append(_like_pattern(json.dumps(todo_filter.tag, ensure_ascii=False)[:-1]))

        sql += f" {_DEFAULT_ORDER}"

        async with self.pool.acquire() as conn:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_todo(row) for row in rows]

    async def get_by_id(self, todo_id: str) -> Todo:
        async with self.pool.acquire() as conn:
            return await self._get_by_id(conn, todo_id)

    async def find_by_id_prefix(self, prefix: str) -> Todo | None:
        """Return the only task whose id starts with ``prefix``; ``None`` when zero or several match."""
        if not prefix:
            return None
        async with self.pool.acquire() as conn:
            cursor = await conn.execute(
                f"SELECT {_COLUMNS} FROM todos WHERE substr(id, 1, ?) = ? {_DEFAULT_ORDER} LIMIT 2",
                (len(prefix), prefix),
            )
            rows = await cursor.fetchall()
        return _row_to_todo(rows[0]) if len(rows) == 1 else None

    async def search(self, keyword: str) -> list[Todo]:
        return await self.get_all(TodoFilter(search=keyword))

    async def update(self, todo_id: str, request: UpdateTodoRequest) -> Todo:
        async with self.pool.acquire() as conn:
            existing = await self._get_by_id(conn, todo_id)

            updated = Todo(
                id=existing.id,
                text=existing.text if request.text is UNSET else str(request.text),
                completed=existing.completed if request.completed is UNSET else bool(request.completed),
                status=existing.status if request.status is UNSET else TodoStatus(request.status),
                priority=existing.priority if request.priority is UNSET else Priority(request.priority),
                due_date=existing.due_date if request.due_date is UNSET else request.due_date,
                tags=existing.tags if request.tags is UNSET else list(request.tags or []),
                created_at=existing.created_at,
                updated_at=_now(),
            )

            await conn.execute(
                """
                UPDATE todos
                SET text = ?, completed = ?, status = ?, priority = ?, due_date = ?, tags = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated.text,
                    1 if updated.completed else 0,
                    updated.status.value,
                    updated.priority.as_int(),
                    updated.due_date,
                    json.dumps(updated.tags, ensure_ascii=False),
                    updated.updated_at,
                    todo_id,
                ),
            )
            await conn.commit()
        return updated

    async def delete(self, todo_id: str) -> None:
        async with self.pool.acquire() as conn:
            cursor = await conn.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
            await conn.commit()
            if cursor.rowcount == 0:
                raise TodoNotFoundError(todo_id)

    async def delete_completed(self) -> int:
        async with self.pool.acquire() as conn:
            cursor = await conn.execute("DELETE FROM todos WHERE completed = 1")
            await conn.commit()
            return int(cursor.rowcount)

    async def get_statistics(self) -> TodoStatistics:
        async with self.pool.acquire() as conn:
            cursor = await conn.execute(
                """
                SELECT
                  COUNT(*) AS total,
                  COALESCE(SUM(CASE WHEN completed = 1 THEN 1 ELSE 0 END), 0) AS completed,
                  COALESCE(SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END), 0) AS pending,
                  COALESCE(SUM(CASE WHEN status = 'in_progress' THEN 1 ELSE 0 END), 0) AS in_progress,
                  COALESCE(SUM(CASE WHEN status = 'cancelled' THEN 1 ELSE 0 END), 0) AS cancelled
                FROM todos
                """
            )
            row = await cursor.fetchone()
        return TodoStatistics(
            total=int(row["total"]),
            completed=int(row["completed"]),
            pending=int(row["pending"]),
            in_progress=int(row["in_progress"]),
            cancelled=int(row["cancelled"]),
        )

    async def _get_by_id(self, conn: aiosqlite.Connection, todo_id: str) -> Todo:
        cursor = await conn.execute(f"SELECT {_COLUMNS} FROM todos WHERE id = ?", (todo_id,))
        row = await cursor.fetchone()
        if row is None:
            raise TodoNotFoundError(todo_id)
        return _row_to_todo(row)
