from __future__ import annotations

from aideo.models.todo import Todo

CONTEXT_TODO_LIMIT = 10
SHORT_ID_LENGTH = 8

NO_PENDING_TODOS = "There are no pending tasks."
PENDING_TODOS_HEADER = "Current pending tasks:"
TEXT_FALLBACK_WARNING = (
    "Function calls were parsed from text instead of a structured format. "
    "Your API may not fully support function calling."
)


def render_todo_context(todos: list[Todo]) -> str:
    pending = [todo for todo in todos if not todo.completed][:CONTEXT_TODO_LIMIT]
    if not pending:
        return NO_PENDING_TODOS
    lines = [f"- [ ] {todo.text} (ID: {todo.id[:SHORT_ID_LENGTH]})" for todo in pending]
    return PENDING_TODOS_HEADER + "\n" + "\n".join(lines)


def build_system_context(system_prompt: str, todos: list[Todo]) -> str:
    return f"{system_prompt}\n\n---\n{render_todo_context(todos)}"
