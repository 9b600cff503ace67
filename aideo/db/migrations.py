from __future__ import annotations

import asyncio
from pathlib import Path

from aideo.config import load_settings
from aideo.db.connection import open_connection

MIGRATIONS_DIR = Path(__file__).resolve().parent / "sql"


async def apply_migrations(db_path: Path) -> list[str]:
    """Apply pending ``*.sql`` files in name order; returns the versions applied."""
    migration_files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    applied: list[str] = []

    conn = await open_connection(db_path)
    try:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
              version TEXT PRIMARY KEY,
              applied_at TEXT NOT NULL
            )
            """
        )
        await conn.commit()

        for migration_path in migration_files:
            version = migration_path.name
            cursor = await conn.execute(
                "SELECT 1 FROM schema_migrations WHERE version = ?", (version,)
            )
            row = await cursor.fetchone()
            if row:
                continue

            sql = migration_path.read_text(encoding="utf-8")
            await conn.executescript(sql)
            await conn.execute(
                "INSERT INTO schema_migrations(version, applied_at) VALUES(?, strftime('%Y-%m-%dT%H:%M:%fZ','now'))",
                (version,),
            )
            await conn.commit()
            applied.append(version)
    finally:
        await conn.close()

    return applied


if __name__ == "__main__":
    asyncio.run(apply_migrations(load_settings().db_path))
