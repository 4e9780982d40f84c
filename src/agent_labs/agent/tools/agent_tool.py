"""
agent_labs.agent.tools.agent_tool - Expose a specialist agent as a tool.

The customer-support orchestrator has no tools of its own: it routes
each request to order_agent, policy_agent or message_formulator_agent,
and the model picks one purely from the descriptions below.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from agent_labs.application.context import RequestContext
from agent_labs.domain.exceptions import AgentExecutionError
from agent_labs.agent.tools.base import BaseTool, QueryInput, ToolResult

if TYPE_CHECKING:
    from agent_labs.agent.chat_agent import ChatAgent

logger = logging.getLogger(__name__)


ORDER_AGENT_DESCRIPTION = """Agent for ORDERS and STATUS.

Use this agent when you see the words:
- 'statut' + 'commande'
- 'où en est' + 'commande'
- 'suivi' + 'livraison'
- Order number (ORD-XXXX-XXX)

Examples YES (use this agent):
- 'Où en est ma commande ORD-2026-001 ?' ✅
- 'Je veux connaître le statut de ma commande ORD-2026-001' ✅
- 'Quel est le statut de ma livraison ?' ✅
- 'Suivi de ma commande' ✅
- 'Détails de ma commande' ✅

Examples NO:
- 'Comment être remboursé ?' ❌ → policy_agent
- 'Je veux écrire au vendeur' ❌ → message_formulator_agent"""

POLICY_AGENT_DESCRIPTION = """Agent specialized in POLICIES and CONDITIONS.

Use this agent when the customer asks for INFORMATION about:
- RETURN policy (how to return, return deadline, conditions)
- REFUND policy (how to get refunded, timeline, conditions)
- CANCELLATION policy (how to cancel, when can you cancel, fees)
- General RIGHTS and CONDITIONS

Question examples:
- 'Comment faire pour retourner un produit ?' ✅
- 'Quelles sont les conditions pour être remboursé ?' ✅
- 'Quel est le délai de remboursement ?' ✅
- 'Puis-je annuler ma commande ?' ✅
- 'Quelle est votre politique de retour ?' ✅

THIS AGENT RESPONDS DIRECTLY with official information.
DO NOT USE for: writing a message to the seller, getting order status."""

MESSAGE_FORMULATOR_AGENT_DESCRIPTION = """Agent to HELP WRITE a message to the SELLER.

Use this agent when the customer has a PROBLEM that requires CONTACTING THE SELLER:
- Broken/defective/damaged product
- Quality issue
- Product doesn't match description
- Wrong product received
- Missing parts
- Specific question about the product
- Special request to the seller

Examples YES (contact the seller):
- 'Mon produit est cassé' ✅
- 'Le produit ne fonctionne pas' ✅
- 'Ce n'est pas ce que j'ai commandé' ✅
- 'Il manque des pièces' ✅
- 'Je veux écrire au vendeur' ✅
- 'Le produit ne correspond pas à la description' ✅

Examples NO (answer directly, no need for seller):
- 'Où en est ma commande ?' ❌ → order_agent
- 'Comment être remboursé ?' ❌ → policy_agent
- 'Puis-je annuler ma commande ?' ❌ → policy_agent
- 'Quel est le statut de ma livraison ?' ❌ → order_agent

RULE: If the question can be answered with order_agent or policy_agent, DO NOT use this agent."""

# sub-agent id → (tool name, routing description)
AGENT_TOOL_DESCRIPTIONS: dict[str, tuple[str, str]] = {
    "order": ("order_agent", ORDER_AGENT_DESCRIPTION),
    "policy": ("policy_agent", POLICY_AGENT_DESCRIPTION),
    "message-formulator": ("message_formulator_agent", MESSAGE_FORMULATOR_AGENT_DESCRIPTION),
}


class AgentTool(BaseTool):
    """Run another agent on a single query and return its answer."""

    def __init__(self, agent: ChatAgent, name: str, description: str):
        self._agent = agent
        self.name = name
        self.description = description

    def get_schema(self) -> type[BaseModel]:
        return QueryInput

    async def execute(self, ctx: RequestContext, query: str = "", **kwargs) -> ToolResult:
        logger.info("Delegating to %s: %s", self.name, query[:80])
        result = await self._agent.run_detached(query, ctx=ctx)
        if result.awaiting_approval:
            raise AgentExecutionError(
                f"{self.name} stopped on a call that needs approval; nothing was executed"
            )
        return ToolResult(output=result.text)
