from __future__ import annotations

from datetime import datetime, timezone

from aideo.db.connection import ConnectionPool
from aideo.models.settings import AiSettings, FunctionCallingMode

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class SettingsRepository:
    """Key/value persistence of :class:`AiSettings`.

    Missing or unparsable values fall back to the dataclass defaults.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def get(self) -> AiSettings:
        async with self.pool.acquire() as conn:
            cursor = await conn.execute("SELECT key, value FROM settings")
            rows = await cursor.fetchall()
        values = {str(row["key"]): str(row["value"]) for row in rows}

        settings = AiSettings()
        api_key = values.get("api_key", "").strip()
        if api_key:
            settings.api_key = api_key
        if "api_base_url" in values:
            settings.api_base_url = values["api_base_url"]
        if "model" in values:
            settings.model = values["model"]
        if "system_prompt" in values:
            settings.system_prompt = values["system_prompt"]
        if "function_calling_mode" in values:
            settings.function_calling_mode = FunctionCallingMode.parse(values["function_calling_mode"])

        try:
            settings.temperature = float(values["temperature"])
        except (KeyError, ValueError):
            pass
        try:
            settings.max_tokens = int(values["max_tokens"])
        except (KeyError, ValueError):
            pass

        fallback = values.get("enable_text_fallback", "").strip().lower()
        if fallback in _TRUE_VALUES:
            settings.enable_text_fallback = True
        elif fallback in _FALSE_VALUES:
            settings.enable_text_fallback = False

        return settings

    async def save(self, settings: AiSettings) -> None:
        now = datetime.now(tz=timezone.utc).isoformat()
        entries = [
            ("api_key", settings.api_key or ""),
            ("api_base_url", settings.api_base_url),
            ("model", settings.model),
            ("temperature", str(settings.temperature)),
            ("max_tokens", str(settings.max_tokens)),
            ("system_prompt", settings.system_prompt),
            ("function_calling_mode", settings.function_calling_mode.value),
            ("enable_text_fallback", "true" if settings.enable_text_fallback else "false"),
        ]
        async with self.pool.acquire() as conn:
            await conn.executemany(
                """
                INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                [(key, value, now) for key, value in entries],
            )
            await conn.commit()
