"""
agent_labs.application.services.thread_history - Conversation read/clear service.

Backs the /api/threads endpoints and the CLI ``thread`` command.
"""

from __future__ import annotations

import logging

from agent_labs.application.dto import ThreadMessages
from agent_labs.domain.entities import ThreadSummary
from agent_labs.domain.exceptions import ThreadNotFoundError
from agent_labs.domain.ports import ThreadRepository

logger = logging.getLogger(__name__)


class ThreadHistoryService:
    """Retrieves and clears stored threads."""

    def __init__(self, thread_repo: ThreadRepository):
        self._thread_repo = thread_repo

    async def get_thread(self, thread_id: str) -> ThreadMessages:
        """Return every message of a thread, oldest first.

        Raises:
            ValueError: If thread_id is blank.
            ThreadNotFoundError: If the thread has no messages.
        """
        if not thread_id or not thread_id.strip():
            raise ValueError("Thread ID is required.")

        messages = await self._thread_repo.get_messages(thread_id)
        if not messages:
            raise ThreadNotFoundError(f"No messages found for thread with ID '{thread_id}'")

        logger.info("Retrieved %d message(s) for thread %s", len(messages), thread_id)
        return ThreadMessages(thread_id=thread_id, messages=messages)

    async def list_threads(self) -> list[ThreadSummary]:
        return await self._thread_repo.list_threads()

    async def clear(self, thread_id: str) -> int:
        """Delete a thread's messages.

        Raises:
            ThreadNotFoundError: If nothing was stored under thread_id.
        """
        if not thread_id or not thread_id.strip():
            raise ValueError("Thread ID is required.")
        removed = await self._thread_repo.clear(thread_id)
        if removed == 0:
            raise ThreadNotFoundError(f"No messages found for thread with ID '{thread_id}'")
        return removed
