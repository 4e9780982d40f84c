"""
agent_labs.agent.tools.seller_requirements - What the seller will ask the customer for.

Searches the seller-requirements corpus, reorders the hits by problem
typology and returns at most three bullets (documents first). Follow-up
turns get an empty answer so the formulated message is not padded with
the same requirements twice.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from agent_labs.application.context import RequestContext
from agent_labs.domain.ports import PolicySearcher
from agent_labs.agent.tools.base import BaseTool, ToolResult
from agent_labs.agent.typology import filter_by_typology, format_requirements, resolve_typology

logger = logging.getLogger(__name__)

REQUIREMENTS_TOP_K = 6


class SellerRequirementsInput(BaseModel):
    problem_description: str = Field(
        description=(
            "Description du problème du client (ex: 'écran cassé', "
            "'produit ne fonctionne pas', 'mauvais produit reçu')"
        )
    )


class SellerRequirementsTool(BaseTool):
    """Seller-side requirements for a customer's problem."""

    name = "search_seller_requirements"
    description = (
        "Recherche les documents et informations que le vendeur demandera au client "
        "selon le type de problème. Utilise cet outil pour savoir ce que le vendeur va "
        "demander (photos, numéro de commande, etc.) afin de l'inclure dans les exigences."
    )

    def __init__(self, searcher: PolicySearcher):
        self._searcher = searcher

    def get_schema(self) -> type[BaseModel]:
        return SellerRequirementsInput

    async def execute(
        self, ctx: RequestContext, problem_description: str = "", **kwargs,
    ) -> ToolResult:
        if ctx.is_follow_up:
            logger.info("Follow-up turn: seller requirements suppressed")
            return ToolResult(output="")

        # Over-fetch, then let the typology pick the right sections.
        results = await self._searcher.search(problem_description, top_k=REQUIREMENTS_TOP_K)
        if not results:
            return ToolResult(
                output="Aucune exigence spécifique trouvée pour ce type de problème."
            )

        typology = resolve_typology(problem_description)
        ordered = filter_by_typology(results, typology)
        logger.info(
            "Seller requirements: typology=%s, %d candidate section(s)",
            typology.value, len(ordered),
        )
        return ToolResult(
            output=format_requirements(ordered),
            data=typology,
            store_as="problem_typology",
        )
