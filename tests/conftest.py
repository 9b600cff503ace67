from __future__ import annotations

import importlib

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

import aideo.main as main_module
from aideo.agent.dispatcher import FunctionDispatcher
from aideo.db.connection import ConnectionPool
from aideo.db.migrations import apply_migrations
from aideo.db.settings_repository import SettingsRepository
from aideo.db.todo_repository import TodoRepository


@pytest.fixture
def isolated_client(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AIDEO_DB_PATH", str(tmp_path / "aideo-test.db"))
    module = importlib.reload(main_module)
    with TestClient(module.app) as client:
        yield client


@pytest_asyncio.fixture
async def pool(tmp_path):
    db_path = tmp_path / "store.db"
    await apply_migrations(db_path)
    connection_pool = await ConnectionPool.open(db_path, 2)
    try:
        yield connection_pool
    finally:
        await connection_pool.close()


@pytest.fixture
def todo_repo(pool) -> TodoRepository:
    return TodoRepository(pool)


@pytest.fixture
def settings_repo(pool) -> SettingsRepository:
    return SettingsRepository(pool)


@pytest.fixture
def dispatcher(todo_repo) -> FunctionDispatcher:
    return FunctionDispatcher(todo_repo)
