"""
agent_labs.infrastructure.persistence.user_memory_repo - SQLite user memories.

Facts learned about a user (keyed by the username of a signed context
id), read back before every turn of an agent with user memory.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from agent_labs.domain.entities import UserMemory
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteUserMemoryRepository:
    """Async SQLite implementation of UserMemoryRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_memories(self, user_id: str) -> list[UserMemory]:
        """All memories of a user, oldest first."""
        if not user_id:
            return []
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT id, user_id, memory, created_at FROM user_memories
                   WHERE user_id = ?
                   ORDER BY id ASC""",
                (user_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    async def add_memories(self, memories: Sequence[UserMemory]) -> int:
        """Insert memories; returns how many were stored."""
        if not memories:
            return 0
        now = datetime.now(timezone.utc)
        async with self._conn.acquire() as conn:
            await conn.executemany(
                "INSERT INTO user_memories (user_id, memory, created_at) VALUES (?, ?, ?)",
                [
                    (m.user_id, m.memory, (m.created_at or now).isoformat())
                    for m in memories
                ],
            )
        logger.debug("Stored %d memory(ies)", len(memories))
        return len(memories)

    async def delete_memories(self, user_id: str) -> int:
        """Forget everything about a user. Returns the number of rows removed."""
        if not user_id or not user_id.strip():
            raise ValueError("User ID cannot be null or empty.")
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                "DELETE FROM user_memories WHERE user_id = ?", (user_id,),
            )
            removed = cursor.rowcount
        logger.info("Deleted %d memory(ies) of user %s", removed, user_id)
        return removed

    @staticmethod
    def _row_to_entity(row) -> UserMemory:
        return UserMemory(
            id=row[0],
            user_id=row[1],
            memory=row[2],
            created_at=datetime.fromisoformat(row[3]) if row[3] else None,
        )
