"""
agent_labs.infrastructure.persistence.chat_history_repo - SQLite thread store.

Two views over the same ``chat_history`` table:

* SQLiteChatMessageStore - agent memory: append a turn, load the last N
  messages of a thread as LangChain messages.
* SQLiteThreadRepository - read/clear access for the threads endpoints.

Rows are keyed by thread id + message id (or "<base_ts>_<index>" when
the message has none), so re-saving the same message is an upsert.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Sequence
from uuid import uuid4

from langchain_core.messages import BaseMessage, messages_from_dict, messages_to_dict

from agent_labs.application.messages import content_to_text, role_of
from agent_labs.domain.entities import StoredMessage, ThreadSummary
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SQLiteChatMessageStore:
    """Async SQLite implementation of ChatMessageStore."""

    def __init__(
        self,
        connection: AsyncSQLiteConnection,
        clock: Callable[[], int] = _now_ms,
    ):
        self._conn = connection
        self._clock = clock
        self._last_ts = 0

    def _next_base_ts(self, count: int) -> int:
        # Strictly increasing per store: turns saved in the same millisecond
        # keep distinct keys and their order.
        base_ts = max(self._clock(), self._last_ts + 1)
        self._last_ts = base_ts + count - 1
        return base_ts

    async def get_recent(self, thread_id: str, limit: int = 10) -> list[BaseMessage]:
        """Return the newest *limit* messages of a thread, oldest first."""
        if not thread_id:
            return []
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT serialized_message FROM chat_history
                   WHERE thread_id = ?
                   ORDER BY timestamp DESC
                   LIMIT ?""",
                (thread_id, limit),
            )
        dicts = [json.loads(r[0]) for r in reversed(list(rows))]
        return messages_from_dict(dicts)

    async def append(
        self, thread_id: str | None, messages: Sequence[BaseMessage],
    ) -> str:
        """Store a turn (request + response messages) and return the thread id.

        A thread id is generated when none is given (first message of a
        new conversation).
        """
        thread_id = thread_id or uuid4().hex
        if not messages:
            return thread_id

        base_ts = self._next_base_ts(len(messages))
        serialized = messages_to_dict(list(messages))
        async with self._conn.acquire() as conn:
            for index, (message, payload) in enumerate(zip(messages, serialized)):
                suffix = message.id or f"{base_ts}_{index}"
                await conn.execute(
                    """INSERT OR REPLACE INTO chat_history
                       (key, thread_id, timestamp, role, message_text, serialized_message)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        f"{thread_id}{suffix}",
                        thread_id,
                        base_ts + index,
                        role_of(message),
                        content_to_text(message.content),
                        json.dumps(payload, ensure_ascii=False),
                    ),
                )
        logger.debug("Stored %d message(s) in thread %s", len(messages), thread_id)
        return thread_id


class SQLiteThreadRepository:
    """Async SQLite implementation of ThreadRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_messages(self, thread_id: str) -> list[StoredMessage]:
        """All messages of a thread, ordered by timestamp ascending."""
        if not thread_id or not thread_id.strip():
            raise ValueError("Thread ID cannot be null or empty.")
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT key, thread_id, timestamp, role, message_text, serialized_message
                   FROM chat_history
                   WHERE thread_id = ?
                   ORDER BY timestamp ASC""",
                (thread_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    async def list_threads(self) -> list[ThreadSummary]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT thread_id, COUNT(*), MAX(timestamp)
                   FROM chat_history
                   GROUP BY thread_id
                   ORDER BY MAX(timestamp) DESC""",
            )
            return [ThreadSummary(thread_id=r[0], message_count=r[1], last_timestamp=r[2]) for r in rows]

    async def clear(self, thread_id: str) -> int:
        """Delete every message of a thread. Returns the number of rows removed."""
        if not thread_id or not thread_id.strip():
            raise ValueError("Thread ID cannot be null or empty.")
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                "DELETE FROM chat_history WHERE thread_id = ?", (thread_id,),
            )
            removed = cursor.rowcount
        logger.info("Cleared thread %s (%d message(s))", thread_id, removed)
        return removed

    @staticmethod
    def _row_to_entity(row) -> StoredMessage:
        return StoredMessage(
            key=row[0],
            thread_id=row[1],
            timestamp=row[2],
            role=row[3] or "",
            message_text=row[4] or "",
            serialized_message=row[5] or "",
        )
