"""
agent_labs.infrastructure.persistence.connection - Async SQLite connection manager.

One short-lived aiosqlite connection per operation. Concurrent requests
may append to different threads at the same time, so every connection
waits on the write lock (busy timeout) instead of failing, and file
databases run in WAL mode so readers never block the writer.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from agent_labs.domain.exceptions import RepositoryError

logger = logging.getLogger(__name__)

_MEMORY = ":memory:"


class AsyncSQLiteConnection:
    """Async SQLite connection provider with auto-commit/rollback."""

    def __init__(self, db_path: str, busy_timeout: float = 5.0):
        self._db_path = db_path
        self._busy_timeout = busy_timeout

    @property
    def db_path(self) -> str:
        return self._db_path

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; commit on success, roll back on exception.

        Raises:
            RepositoryError: If SQLite itself fails (locked, corrupt, ...).
        """
        if self._db_path != _MEMORY:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self._db_path, timeout=self._busy_timeout) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
            if self._db_path != _MEMORY:
                await conn.execute("PRAGMA journal_mode = WAL")
            try:
                yield conn
                await conn.commit()
            except sqlite3.Error as exc:
                await conn.rollback()
                logger.error("SQLite error on %s, rolled back: %s", self._db_path, exc)
                raise RepositoryError(f"Database operation failed: {exc}") from exc
            except Exception:
                await conn.rollback()
                raise
