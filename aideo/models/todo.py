"""Task entities shared by the store, the dispatcher and the HTTP surface."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TodoStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str | None) -> "TodoStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def as_int(self) -> int:
        return _PRIORITY_ORDER.index(self)

    @classmethod
    def from_int(cls, value: int | None) -> "Priority":
        if isinstance(value, int) and 0 <= value < len(_PRIORITY_ORDER):
            return _PRIORITY_ORDER[value]
        return cls.LOW

    @classmethod
    def parse(cls, value: str | None) -> "Priority":
        try:
            return cls(value)
        except ValueError:
            return cls.LOW


_PRIORITY_ORDER = (Priority.LOW, Priority.MEDIUM, Priority.HIGH)


class _Unset:
    """Marker for patch fields the caller did not supply."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(slots=True)
class Todo:
    id: str
    text: str
    completed: bool
    status: TodoStatus
    priority: Priority
    due_date: str | None
    tags: list[str]
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": self.due_date,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class CreateTodoRequest:
    text: str
    priority: Priority | None = None
    due_date: str | None = None
    tags: list[str] | None = None


@dataclass(slots=True)
class UpdateTodoRequest:
    """Partial patch: fields left as ``UNSET`` keep the stored value.

    ``due_date=None`` clears the date; any later update carrying a date
    stores that date.
    """

    text: Any = UNSET
    completed: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET
    tags: Any = UNSET


@dataclass(slots=True)
class TodoFilter:
    status: TodoStatus | None = None
    completed: bool | None = None
    priority: Priority | None = None
    search: str | None = None
    tag: str | None = None


@dataclass(slots=True)
class TodoStatistics:
    total: int
    completed: int
    pending: int
    in_progress: int
    cancelled: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "cancelled": self.cancelled,
        }
