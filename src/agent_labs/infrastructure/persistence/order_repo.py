"""
agent_labs.infrastructure.persistence.order_repo - SQLite order repository.

Orders, their line items and the status catalogue. The demo data set is
loaded from data/orders.json by seed_orders() on first startup.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from agent_labs.domain.entities import Order, OrderItem, OrderStatus, ShippingAddress
from agent_labs.domain.exceptions import RepositoryError
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteOrderRepository:
    """Async SQLite implementation of OrderRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_order_by_id(self, order_id: str) -> Order | None:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM orders WHERE UPPER(order_id) = UPPER(?)",
                (order_id.strip(),),
            )
            if not rows:
                return None
            order = self._row_to_entity(rows[0])
            order.items = await self._load_items(conn, order.order_id)
            return order

    async def get_order_status_by_id(self, status_id: int) -> OrderStatus | None:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT id, code, display_name, description, is_final "
                "FROM order_statuses WHERE id = ?",
                (status_id,),
            )
            if not rows:
                return None
            r = rows[0]
            return OrderStatus(
                id=r[0], code=r[1] or "", display_name=r[2] or "",
                description=r[3] or "", is_final=bool(r[4]),
            )

    async def get_orders_by_customer(self, customer: str) -> list[Order]:
        """Orders of a customer, newest first (login match is case-insensitive)."""
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM orders
                   WHERE LOWER(customer) = LOWER(?)
                   ORDER BY created_at DESC""",
                (customer.strip(),),
            )
            orders = [self._row_to_entity(r) for r in rows]
            for order in orders:
                order.items = await self._load_items(conn, order.order_id)
            return orders

    async def save(self, order: Order) -> int:
        async with self._conn.acquire() as conn:
            await conn.execute("DELETE FROM order_items WHERE order_id = ?", (order.order_id,))
            cursor = await conn.execute(
                """INSERT OR REPLACE INTO orders
                   (order_id, customer, status_id, currency, street, postal_code,
                    city, country, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    order.order_id, order.customer, order.status_id, order.currency,
                    order.shipping_address.street, order.shipping_address.postal_code,
                    order.shipping_address.city, order.shipping_address.country,
                    order.created_at.isoformat(), order.updated_at.isoformat(),
                ),
            )
            for item in order.items:
                await conn.execute(
                    """INSERT INTO order_items (order_id, product_name, quantity, unit_price)
                       VALUES (?, ?, ?, ?)""",
                    (order.order_id, item.product_name, item.quantity, item.unit_price),
                )
            return cursor.lastrowid

    async def save_status(self, status: OrderStatus) -> None:
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT OR REPLACE INTO order_statuses
                   (id, code, display_name, description, is_final)
                   VALUES (?, ?, ?, ?, ?)""",
                (status.id, status.code, status.display_name,
                 status.description, int(status.is_final)),
            )

    async def count(self) -> int:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall("SELECT COUNT(*) FROM orders")
            return rows[0][0]

    @staticmethod
    async def _load_items(conn, order_id: str) -> list[OrderItem]:
        rows = await conn.execute_fetchall(
            """SELECT product_name, quantity, unit_price FROM order_items
               WHERE order_id = ? ORDER BY id ASC""",
            (order_id,),
        )
        return [OrderItem(product_name=r[0], quantity=r[1], unit_price=r[2]) for r in rows]

    @staticmethod
    def _row_to_entity(row) -> Order:
        return Order(
            id=row["id"],
            order_id=row["order_id"],
            customer=row["customer"] or "",
            status_id=row["status_id"],
            currency=row["currency"] or "EUR",
            shipping_address=ShippingAddress(
                street=row["street"] or "",
                postal_code=row["postal_code"] or "",
                city=row["city"] or "",
                country=row["country"] or "",
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


def _parse_status(s: dict) -> OrderStatus:
    return OrderStatus(
        id=s["id"],
        code=s["code"],
        display_name=s["displayName"],
        description=s.get("description", ""),
        is_final=bool(s.get("isFinal", False)),
    )


def _parse_order(o: dict) -> Order:
    address = o.get("shippingAddress", {})
    return Order(
        order_id=o["orderId"],
        customer=o["customer"],
        status_id=o["statusId"],
        currency=o.get("currency", "EUR"),
        created_at=datetime.fromisoformat(o["createdAt"]),
        updated_at=datetime.fromisoformat(o.get("updatedAt", o["createdAt"])),
        items=[
            OrderItem(
                product_name=i["productName"],
                quantity=int(i["quantity"]),
                unit_price=float(i["unitPrice"]),
            )
            for i in o.get("items", [])
        ],
        shipping_address=ShippingAddress(
            street=address.get("street", ""),
            postal_code=address.get("postalCode", ""),
            city=address.get("city", ""),
            country=address.get("country", ""),
        ),
    )


async def seed_orders(repo: SQLiteOrderRepository, data_file: Path) -> int:
    """Load statuses and orders from a JSON file when the table is empty.

    Returns the number of orders inserted (0 when already seeded or the
    file does not exist).

    Raises:
        RepositoryError: If the file is not valid seed data.
    """
    if not data_file.is_file():
        logger.warning("Order seed file not found: %s", data_file)
        return 0
    if await repo.count() > 0:
        return 0

    try:
        raw = json.loads(data_file.read_text(encoding="utf-8"))
        statuses = [_parse_status(s) for s in raw.get("statuses", [])]
        orders = [_parse_order(o) for o in raw.get("orders", [])]
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise RepositoryError(f"Invalid order seed file {data_file}: {exc}") from exc

    for status in statuses:
        await repo.save_status(status)
    for order in orders:
        await repo.save(order)
    logger.info("Seeded %d order(s) from %s", len(orders), data_file)
    return len(orders)
