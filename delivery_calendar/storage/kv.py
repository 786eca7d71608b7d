"""SQLite-backed key-value store.

Plays the role of browser local storage: string keys, string values,
persisted across restarts.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = "data/delivery_calendar.sqlite3"


class KeyValueStore:
    """Persistent string key-value storage."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = str(db_path)
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Ensure database and table exist."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await db.commit()

        self._initialized = True

    async def get(self, key: str) -> str | None:
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            cur = await db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cur.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO kv_store(key, value, updated_at) VALUES(?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (key, value, datetime.now().isoformat()),
            )
            await db.commit()

    async def remove(self, *keys: str) -> None:
        """Delete keys; missing keys are ignored."""
        if not keys:
            return
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            await db.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])
            await db.commit()
