"""
agent_labs.agent.tools.policy - Policy search tools (return, refund, cancellation).

Each tool searches one policy collection (top 3 sections) and renders
the hits as a markdown block the agent can quote verbatim.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic import BaseModel, Field

from agent_labs.application.context import RequestContext
from agent_labs.domain.models import PolicySearchResult
from agent_labs.domain.ports import PolicySearcher
from agent_labs.agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)

POLICY_TOP_K = 3

_POLICY_EMOJIS = {
    "Politique de Retour": "📦",
    "Politique de Remboursement": "💰",
    "Politique d'Annulation": "❌",
}

_FOOTER = "💡 *Si vous avez d'autres questions, n'hésitez pas à me demander !*"


def format_policy_results(results: Sequence[PolicySearchResult], policy_name: str) -> str:
    """Render policy sections: header, one ### block per section, footer.

    Multi-sentence content is split on ". " into bullets, each ending
    with terminal punctuation.
    """
    emoji = _POLICY_EMOJIS.get(policy_name, "📋")
    lines = [f"{emoji} **{policy_name}**", "", "---", ""]

    for result in results:
        record = result.record
        lines.append(f"### {record.title}")
        lines.append("")

        sentences = [s for s in record.content.split(". ") if s]
        if len(sentences) > 1:
            for sentence in sentences:
                clean = sentence.strip()
                if not clean:
                    continue
                if not clean.endswith((".", "!", "?")):
                    clean += "."
                lines.append(f"• {clean}")
        else:
            lines.append(record.content)
        lines.append("")

    lines.extend(["---", "", _FOOTER])
    return "\n".join(lines) + "\n"


class PolicyQueryInput(BaseModel):
    query: str = Field(description="La question du client sur la politique")


class PolicySearchTool(BaseTool):
    """Search one policy collection and format the matching sections."""

    def __init__(
        self,
        searcher: PolicySearcher,
        *,
        name: str,
        description: str,
        policy_name: str,
        empty_message: str,
    ):
        self._searcher = searcher
        self.name = name
        self.description = description
        self.policy_name = policy_name
        self.empty_message = empty_message

    def get_schema(self) -> type[BaseModel]:
        return PolicyQueryInput

    async def execute(self, ctx: RequestContext, query: str = "", **kwargs) -> ToolResult:
        results = await self._searcher.search(query, top_k=POLICY_TOP_K)
        logger.info(
            "%s: %d section(s) for query '%s'", self.name, len(results), query[:60],
        )
        if not results:
            return ToolResult(output=self.empty_message)
        return ToolResult(
            output=format_policy_results(results, self.policy_name),
            data=[r.record.id for r in results],
            store_as=f"{self.name}_sections",
        )


def return_policy_tool(searcher: PolicySearcher) -> PolicySearchTool:
    return PolicySearchTool(
        searcher,
        name="search_return_policy",
        description=(
            "Recherche dans la politique de retour. Utilise cet outil quand le client "
            "pose des questions sur les retours, délais de retour, conditions de retour, "
            "ou comment retourner un produit."
        ),
        policy_name="Politique de Retour",
        empty_message="Aucune information sur la politique de retour trouvée.",
    )


def refund_policy_tool(searcher: PolicySearcher) -> PolicySearchTool:
    return PolicySearchTool(
        searcher,
        name="search_refund_policy",
        description=(
            "Recherche dans la politique de remboursement. Utilise cet outil quand le "
            "client pose des questions sur les remboursements, délais de remboursement, "
            "méthodes de remboursement, ou éligibilité au remboursement."
        ),
        policy_name="Politique de Remboursement",
        empty_message="Aucune information sur la politique de remboursement trouvée.",
    )


def order_cancellation_policy_tool(searcher: PolicySearcher) -> PolicySearchTool:
    return PolicySearchTool(
        searcher,
        name="search_order_cancellation_policy",
        description=(
            "Recherche dans la politique d'annulation de commande. Utilise cet outil "
            "quand le client pose des questions sur l'annulation de commandes, délais "
            "d'annulation, ou frais d'annulation."
        ),
        policy_name="Politique d'Annulation",
        empty_message="Aucune information sur la politique d'annulation trouvée.",
    )
