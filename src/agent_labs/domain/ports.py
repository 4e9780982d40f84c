"""
agent_labs.domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the system needs without specifying HOW. Infrastructure
modules provide concrete implementations; agents and application services
depend only on these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from agent_labs.domain.entities import (
    Order,
    OrderStatus,
    StoredMessage,
    ThreadSummary,
    UserMemory,
)
from agent_labs.domain.models import PolicySearchResult

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage


# ---------------------------------------------------------------------------
# Retrieval Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class PolicySearcher(Protocol):
    """Similarity search over one policy collection."""

    collection_name: str

    async def search(self, query: str, top_k: int = 3) -> list[PolicySearchResult]: ...


# ---------------------------------------------------------------------------
# Repository Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class ChatMessageStore(Protocol):
    """Per-thread message log used as agent memory."""

    async def get_recent(self, thread_id: str, limit: int = 10) -> list[BaseMessage]: ...
    async def append(
        self, thread_id: str | None, messages: Sequence[BaseMessage],
    ) -> str: ...


@runtime_checkable
class ThreadRepository(Protocol):
    """Read/clear access to stored threads."""

    async def get_messages(self, thread_id: str) -> list[StoredMessage]: ...
    async def list_threads(self) -> list[ThreadSummary]: ...
    async def clear(self, thread_id: str) -> int: ...


@runtime_checkable
class OrderRepository(Protocol):
    """Read access to customer orders."""

    async def get_order_by_id(self, order_id: str) -> Order | None: ...
    async def get_order_status_by_id(self, status_id: int) -> OrderStatus | None: ...
    async def get_orders_by_customer(self, customer: str) -> list[Order]: ...


@runtime_checkable
class UserMemoryRepository(Protocol):
    """Facts remembered about a user across conversations."""

    async def get_memories(self, user_id: str) -> list[UserMemory]: ...
    async def add_memories(self, memories: Sequence[UserMemory]) -> int: ...
    async def delete_memories(self, user_id: str) -> int: ...
