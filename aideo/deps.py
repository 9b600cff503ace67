from __future__ import annotations

from aideo.db.settings_repository import SettingsRepository
from aideo.db.todo_repository import TodoRepository
from aideo.services.chat_service import ChatService

_todo_repo: TodoRepository | None = None
_settings_repo: SettingsRepository | None = None
_chat_service: ChatService | None = None


def set_dependencies(
    todo_repo: TodoRepository,
    settings_repo: SettingsRepository,
    chat_service: ChatService,
) -> None:
    global _todo_repo, _settings_repo, _chat_service
    _todo_repo = todo_repo
    _settings_repo = settings_repo
    _chat_service = chat_service


def get_todo_repo() -> TodoRepository:
    if _todo_repo is None:
        raise RuntimeError("TodoRepository not initialized")
    return _todo_repo


def get_settings_repo() -> SettingsRepository:
    if _settings_repo is None:
        raise RuntimeError("SettingsRepository not initialized")
    return _settings_repo


def get_chat_service() -> ChatService:
    if _chat_service is None:
        raise RuntimeError("ChatService not initialized")
    return _chat_service
