from __future__ import annotations

import pytest

from aideo.db.migrations import apply_migrations
from aideo.models.settings import AiSettings, FunctionCallingMode


@pytest.mark.asyncio
async def test_defaults_when_nothing_saved(settings_repo):
    settings = await settings_repo.get()

    assert settings == AiSettings()
    assert settings.api_key is None
    assert settings.function_calling_mode is FunctionCallingMode.AUTO
    assert settings.enable_text_fallback is True


@pytest.mark.asyncio
async def test_save_then_get(settings_repo):
    saved = AiSettings(
        api_key="sk-1",
        api_base_url="http://localhost:11434/v1",
        model="llama3",
        temperature=0.1,
        max_tokens=256,
        system_prompt="Be brief.",
        function_calling_mode=FunctionCallingMode.FUNCTIONS,
        enable_text_fallback=False,
    )

    await settings_repo.save(saved)
    await settings_repo.save(saved)

    assert await settings_repo.get() == saved


@pytest.mark.asyncio
async def test_unparsable_values_fall_back(settings_repo, pool):
    async with pool.acquire() as conn:
        await conn.executemany(
            "INSERT INTO settings (key, value, updated_at) VALUES (?, ?, '2026-01-01')",
            [("temperature", "warm"), ("function_calling_mode", "psychic"), ("api_key", "  ")],
        )
        await conn.commit()

    settings = await settings_repo.get()

    assert settings.temperature == AiSettings().temperature
    assert settings.function_calling_mode is FunctionCallingMode.AUTO
    assert settings.api_key is None


@pytest.mark.asyncio
async def test_migrations_are_idempotent(tmp_path):
    db_path = tmp_path / "migrate.db"

    first = await apply_migrations(db_path)
    second = await apply_migrations(db_path)

    assert first == ["0001_init.sql"]
    assert second == []
