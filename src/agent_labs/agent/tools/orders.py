"""
agent_labs.agent.tools.orders - Order lookup tools.

Read-only access to the order repository, rendered as French markdown
for the order agent. Missing arguments produce an instruction for the
agent ("ask the customer for ...") instead of an error.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from agent_labs.application.context import RequestContext
from agent_labs.domain.entities import Order, OrderStatus
from agent_labs.domain.ports import OrderRepository
from agent_labs.agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)

_DATE_TIME = "%d/%m/%Y %H:%M"
_DATE = "%d/%m/%Y"


def _money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def _not_found(order_id: str) -> str:
    return (
        f"Aucune commande trouvée avec le numéro '{order_id}'. "
        "Vérifie le numéro de commande avec le client."
    )


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_order_info(order: Order, status: OrderStatus | None) -> str:
    lines = [
        f"📦 **Commande {order.order_id}**",
        "",
        f"**Client:** {order.customer}",
        f"**Date de commande:** {order.created_at.strftime(_DATE_TIME)}",
        "",
        "**Articles commandés:**",
    ]
    for item in order.items:
        lines.append(
            f"  - {item.product_name} x{item.quantity} : "
            f"{_money(item.unit_price, order.currency)}"
        )
    lines += ["", f"**Total:** {_money(order.total_amount, order.currency)}", ""]

    if status is not None:
        lines.append(f"**Statut actuel:** {status.display_name}")
        lines.append(f"**Description:** {status.description}")

    address = order.shipping_address
    lines += [
        "",
        "**Adresse de livraison:**",
        f"  {address.street}",
        f"  {address.postal_code} {address.city}",
        f"  {address.country}",
    ]
    return "\n".join(lines) + "\n"


def format_order_status(order: Order, status: OrderStatus) -> str:
    lines = [
        f"📋 **Statut de la commande {order.order_id}**",
        "",
        f"**Statut:** {status.display_name}",
        f"**Description:** {status.description}",
        "",
        f"**Dernière mise à jour:** {order.updated_at.strftime(_DATE_TIME)}",
    ]
    if status.is_final:
        lines += ["", "ℹ️ Cette commande est dans un statut final."]
    return "\n".join(lines) + "\n"


async def format_orders_list(orders: list[Order], repo: OrderRepository) -> str:
    lines = [f"📋 **{len(orders)} commande(s) trouvée(s)**", ""]
    for order in orders:
        status = await repo.get_order_status_by_id(order.status_id)
        status_text = status.display_name if status else "Inconnu"
        lines += [
            f"**{order.order_id}** - {order.created_at.strftime(_DATE)}",
            f"  Montant: {_money(order.total_amount, order.currency)}",
            f"  Statut: {status_text}",
            f"  Articles: {', '.join(i.product_name for i in order.items)}",
            "",
        ]
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class OrderIdInput(BaseModel):
    order_id: str = Field(description="Le numéro de commande (ex: 'ORD-2026-001')")


class CustomerInput(BaseModel):
    customer: str = Field(description="L'identifiant/login du client (ex: 'mbensaid')")


class GetOrderByIdTool(BaseTool):
    name = "get_order_by_id"
    description = (
        "Récupère les informations d'une commande à partir de son numéro. Utilise cet "
        "outil quand le client fournit un numéro de commande et que tu dois obtenir les "
        "détails (produits, montants, statut)."
    )

    def __init__(self, repo: OrderRepository):
        self._repo = repo

    def get_schema(self) -> type[BaseModel]:
        return OrderIdInput

    async def execute(self, ctx: RequestContext, order_id: str = "", **kwargs) -> ToolResult:
        if not order_id or not order_id.strip():
            return ToolResult(
                output="Numéro de commande non fourni. Demande au client son numéro de commande."
            )
        order = await self._repo.get_order_by_id(order_id)
        if order is None:
            return ToolResult(output=_not_found(order_id))

        status = await self._repo.get_order_status_by_id(order.status_id)
        return ToolResult(
            output=format_order_info(order, status),
            data=order,
            store_as="last_order",
        )


class GetOrderStatusTool(BaseTool):
    name = "get_order_status"
    description = (
        "Récupère le statut d'une commande. Utilise cet outil quand le client demande "
        "où en est sa commande ou quel est le statut de sa livraison."
    )

    def __init__(self, repo: OrderRepository):
        self._repo = repo

    def get_schema(self) -> type[BaseModel]:
        return OrderIdInput

    async def execute(self, ctx: RequestContext, order_id: str = "", **kwargs) -> ToolResult:
        if not order_id or not order_id.strip():
            return ToolResult(
                output="Numéro de commande non fourni. Demande au client son numéro de commande."
            )
        order = await self._repo.get_order_by_id(order_id)
        if order is None:
            return ToolResult(output=_not_found(order_id))

        status = await self._repo.get_order_status_by_id(order.status_id)
        if status is None:
            return ToolResult(output=f"Statut de commande non trouvé pour la commande '{order_id}'.")
        return ToolResult(output=format_order_status(order, status))


class SearchOrdersByCustomerTool(BaseTool):
    name = "search_orders_by_customer"
    description = (
        "Recherche les commandes d'un client par son identifiant/login. Utilise cet "
        "outil quand le client veut retrouver ses commandes mais ne connaît pas son "
        "numéro de commande."
    )

    def __init__(self, repo: OrderRepository):
        self._repo = repo

    def get_schema(self) -> type[BaseModel]:
        return CustomerInput

    async def execute(self, ctx: RequestContext, customer: str = "", **kwargs) -> ToolResult:
        if not customer or not customer.strip():
            return ToolResult(
                output=(
                    "Identifiant client non fourni. Demande au client son identifiant "
                    "pour rechercher ses commandes."
                )
            )
        orders = await self._repo.get_orders_by_customer(customer)
        if not orders:
            return ToolResult(
                output=f"Aucune commande trouvée pour le client '{customer}'. Vérifie l'identifiant."
            )
        logger.info("Found %d order(s) for customer %s", len(orders), customer)
        return ToolResult(output=await format_orders_list(orders, self._repo))
