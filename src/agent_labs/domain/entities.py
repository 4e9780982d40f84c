"""
agent_labs.domain.entities - Persistence-aware types (have IDs, timestamps).

These dataclasses are decoupled from any persistence strategy: no SQL
concerns, no DB imports. Timestamps are set by the repository
implementations, not by the entities themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


# ---------------------------------------------------------------------------
# Conversation store
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoredMessage:
    """One immutable row of a thread's message log.

    key:                 thread id + message id (or "<base_ts>_<index>").
    timestamp:           Unix epoch in milliseconds; orders the log.
    serialized_message:  JSON produced by langchain_core messages_to_dict.
    """
    key: str
    thread_id: str
    timestamp: int
    role: str
    message_text: str
    serialized_message: str


@dataclass
class ThreadSummary:
    """Aggregate view of a stored thread."""
    thread_id: str
    message_count: int
    last_timestamp: int


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@dataclass
class OrderItem:
    product_name: str
    quantity: int
    unit_price: float


@dataclass
class ShippingAddress:
    street: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = ""


@dataclass
class OrderStatus:
    """Lifecycle status of an order (e.g. "En cours de livraison")."""
    id: int
    code: str
    display_name: str
    description: str = ""
    is_final: bool = False


@dataclass
class Order:
    """Customer order with its line items."""
    order_id: str
    customer: str
    status_id: int
    created_at: datetime
    updated_at: datetime
    currency: str = "EUR"
    items: list[OrderItem] = field(default_factory=list)
    shipping_address: ShippingAddress = field(default_factory=ShippingAddress)
    id: Optional[int] = None

    @property
    def total_amount(self) -> float:
        return round(sum(i.unit_price * i.quantity for i in self.items), 2)


# ---------------------------------------------------------------------------
# User memory
# ---------------------------------------------------------------------------

@dataclass
class UserMemory:
    """One fact learned about a user, e.g. "Is called Alice and lives in Lyon"."""
    user_id: str
    memory: str
    created_at: Optional[datetime] = None
    id: Optional[int] = None
