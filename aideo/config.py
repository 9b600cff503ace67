from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class Settings:
    db_path: Path
    db_pool_size: int
    host: str
    port: int
    http_timeout_seconds: float
    log_level: str


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


def load_settings() -> Settings:
    db_path = Path(os.getenv("AIDEO_DB_PATH", ".aideo/aideo.db"))
    db_path.parent.mkdir(parents=True, exist_ok=True)

    return Settings(
        db_path=db_path,
        db_pool_size=max(_parse_int(os.getenv("AIDEO_DB_POOL_SIZE"), 4), 1),
        host=os.getenv("AIDEO_HOST", "127.0.0.1"),
        port=_parse_int(os.getenv("AIDEO_PORT"), 8040),
        http_timeout_seconds=_parse_float(os.getenv("AIDEO_HTTP_TIMEOUT_SECONDS"), 60.0),
        log_level=os.getenv("AIDEO_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
