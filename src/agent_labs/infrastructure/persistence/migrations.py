"""
agent_labs.infrastructure.persistence.migrations - Database schema creation.

Called once at startup by the factory.
"""

from __future__ import annotations

import logging

from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS chat_history (
        key TEXT PRIMARY KEY,
        thread_id TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        role TEXT,
        message_text TEXT,
        serialized_message TEXT
    )""",
    """CREATE INDEX IF NOT EXISTS ix_chat_history_thread_ts
        ON chat_history (thread_id, timestamp)""",
    """CREATE TABLE IF NOT EXISTS order_statuses (
        id INTEGER PRIMARY KEY,
        code TEXT UNIQUE,
        display_name TEXT,
        description TEXT,
        is_final INTEGER DEFAULT 0
    )""",
    """CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id TEXT UNIQUE,
        customer TEXT,
        status_id INTEGER,
        currency TEXT,
        street TEXT,
        postal_code TEXT,
        city TEXT,
        country TEXT,
        created_at TEXT,
        updated_at TEXT,
        FOREIGN KEY (status_id) REFERENCES order_statuses(id)
    )""",
    """CREATE INDEX IF NOT EXISTS ix_orders_customer ON orders (customer)""",
    """CREATE TABLE IF NOT EXISTS user_memories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        memory TEXT NOT NULL,
        created_at TEXT
    )""",
    """CREATE INDEX IF NOT EXISTS ix_user_memories_user ON user_memories (user_id)""",
    """CREATE TABLE IF NOT EXISTS order_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id TEXT,
        product_name TEXT,
        quantity INTEGER,
        unit_price REAL,
        FOREIGN KEY (order_id) REFERENCES orders(order_id)
    )""",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create all tables if they don't exist.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    async with connection.acquire() as conn:
        for ddl in _TABLES:
            await conn.execute(ddl)
    logger.info("All tables created (or already exist).")
