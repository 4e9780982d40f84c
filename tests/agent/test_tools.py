"""
Tests for the agent tools: orders, policies, seller requirements,
sensitive operations and the registry that exposes them to the model.
"""
import pytest

from agent_labs.agent.tools.base import BaseTool, QueryInput, ToolResult
from agent_labs.agent.tools.orders import (
    GetOrderByIdTool,
    GetOrderStatusTool,
    SearchOrdersByCustomerTool,
)
from agent_labs.agent.tools.policy import (
    POLICY_TOP_K,
    format_policy_results,
    refund_policy_tool,
    return_policy_tool,
)
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.tools.seller_requirements import REQUIREMENTS_TOP_K, SellerRequirementsTool
from agent_labs.agent.tools.sensitive import DeleteEmployeeDataTool
from agent_labs.application.context import FOLLOW_UP_KEY, RequestContext
from agent_labs.domain.models import ProblemTypology
from tests.fakes import FakeSearcher, make_result


@pytest.fixture
def ctx():
    return RequestContext(context_id="ctx-1", is_new_context=False)


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

class TestFormatPolicyResults:

    def test_sentences_become_bullets(self):
        text = format_policy_results(
            [make_result("delay", "Délai de retour",
                         "Vous disposez de 30 jours. Le produit doit être intact")],
            "Politique de Retour",
        )
        lines = text.splitlines()
        assert lines[0] == "📦 **Politique de Retour**"
        assert "### Délai de retour" in lines
        assert "• Vous disposez de 30 jours." in lines
        assert "• Le produit doit être intact." in lines
        assert lines[-1].startswith("💡")

    def test_single_sentence_kept_verbatim(self):
        text = format_policy_results(
            [make_result("free", "Retour gratuit", "Le retour est gratuit.")],
            "Politique de Remboursement",
        )
        assert text.startswith("💰 **Politique de Remboursement**")
        assert "Le retour est gratuit." in text.splitlines()
        assert "•" not in text

    def test_unknown_policy_gets_default_emoji(self):
        assert format_policy_results([], "Autre").startswith("📋 **Autre**")


class TestPolicySearchTool:

    @pytest.mark.asyncio
    async def test_search_and_format(self, ctx):
        searcher = FakeSearcher([make_result("r1", "Conditions", "Produit neuf.", document_id="return-policy")])
        tool = return_policy_tool(searcher)

        result = await tool.execute(ctx, query="Comment retourner un produit ?")

        assert tool.name == "search_return_policy"
        assert searcher.queries == [("Comment retourner un produit ?", POLICY_TOP_K)]
        assert "### Conditions" in result.output
        assert result.data == ["return-policy-r1"]

    @pytest.mark.asyncio
    async def test_no_results(self, ctx):
        tool = refund_policy_tool(FakeSearcher())
        result = await tool.execute(ctx, query="remboursement")
        assert result.output == "Aucune information sur la politique de remboursement trouvée."

    def test_schema(self):
        assert set(return_policy_tool(FakeSearcher()).get_schema().model_fields) == {"query"}


# ---------------------------------------------------------------------------
# Seller requirements
# ---------------------------------------------------------------------------

class TestSellerRequirementsTool:

    @pytest.fixture
    def searcher(self):
        return FakeSearcher([
            make_result("delivery", "Problème de livraison", "- Numéro de suivi"),
            make_result("damaged", "Produit endommagé ou cassé",
                        "- Photo du produit endommagé\n- Photo de l'emballage\n- Facture"),
        ])

    @pytest.mark.asyncio
    async def test_typology_orders_sections(self, ctx, searcher):
        registry = ToolRegistry([SellerRequirementsTool(searcher)])

        output = await registry.invoke(
            "search_seller_requirements", ctx, problem_description="L'écran est cassé",
        )

        assert searcher.queries == [("L'écran est cassé", REQUIREMENTS_TOP_K)]
        assert output.splitlines()[0] == "- Facture"
        assert "- Numéro de suivi" not in output
        assert ctx.scratch["problem_typology"] is ProblemTypology.DAMAGED

    @pytest.mark.asyncio
    async def test_follow_up_suppresses_requirements(self, ctx, searcher):
        ctx.scratch[FOLLOW_UP_KEY] = True
        result = await SellerRequirementsTool(searcher).execute(ctx, problem_description="cassé")
        assert result.output == ""
        assert searcher.queries == []

    @pytest.mark.asyncio
    async def test_no_results(self, ctx):
        result = await SellerRequirementsTool(FakeSearcher()).execute(ctx, problem_description="cassé")
        assert "Aucune exigence" in result.output


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class TestOrderTools:

    @pytest.mark.asyncio
    async def test_order_by_id(self, ctx, order_repo):
        result = await GetOrderByIdTool(order_repo).execute(ctx, order_id="ord-2026-001")

        assert "**Commande ORD-2026-001**" in result.output
        assert "**Client:** Marie Dupont" in result.output
        assert "Casque audio sans fil x1 : 129.90 EUR" in result.output
        assert "**Total:** 149.88 EUR" in result.output
        assert "**Statut actuel:** Expédiée" in result.output
        assert result.store_as == "last_order"

    @pytest.mark.asyncio
    async def test_order_not_found(self, ctx, order_repo):
        result = await GetOrderByIdTool(order_repo).execute(ctx, order_id="ORD-9999")
        assert "Aucune commande trouvée avec le numéro 'ORD-9999'" in result.output

    @pytest.mark.asyncio
    async def test_missing_order_id_asks_the_customer(self, ctx, order_repo):
        result = await GetOrderStatusTool(order_repo).execute(ctx, order_id="  ")
        assert result.output.startswith("Numéro de commande non fourni")

    @pytest.mark.asyncio
    async def test_final_status(self, ctx, order_repo):
        result = await GetOrderStatusTool(order_repo).execute(ctx, order_id="ORD-2026-002")
        assert "**Statut:** Livrée" in result.output
        assert "statut final" in result.output

    @pytest.mark.asyncio
    async def test_orders_by_customer(self, ctx, order_repo):
        result = await SearchOrdersByCustomerTool(order_repo).execute(ctx, customer="lucas martin")
        assert "2 commande(s) trouvée(s)" in result.output
        assert "ORD-2026-003" in result.output
        assert "ORD-2026-005" in result.output

    @pytest.mark.asyncio
    async def test_unknown_customer(self, ctx, order_repo):
        result = await SearchOrdersByCustomerTool(order_repo).execute(ctx, customer="nobody")
        assert "Aucune commande trouvée pour le client 'nobody'" in result.output


# ---------------------------------------------------------------------------
# Sensitive operations and registry
# ---------------------------------------------------------------------------

class EchoTool(BaseTool):
    name = "echo"
    description = "Echo the query back."

    def get_schema(self):
        return QueryInput

    async def execute(self, ctx, query: str = "", **kwargs) -> ToolResult:
        return ToolResult(output=f"echo: {query}", data=query, store_as="echoed")


class TestSensitiveTool:

    def test_requires_approval(self):
        assert DeleteEmployeeDataTool.requires_approval is True

    @pytest.mark.asyncio
    async def test_execute(self, ctx):
        result = await DeleteEmployeeDataTool().execute(ctx, employee_id="E-42")
        assert "E-42" in result.output
        assert "permanently deleted" in result.output


class TestToolRegistry:

    @pytest.mark.asyncio
    async def test_invoke_stores_data(self, ctx):
        registry = ToolRegistry([EchoTool()])
        assert await registry.invoke("echo", ctx, query="hi") == "echo: hi"
        assert ctx.scratch["echoed"] == "hi"

    def test_unknown_tool(self):
        with pytest.raises(KeyError):
            ToolRegistry().get("missing")

    def test_subset(self):
        registry = ToolRegistry([EchoTool(), DeleteEmployeeDataTool()])
        assert registry.subset(["echo"]).names() == ["echo"]

    @pytest.mark.asyncio
    async def test_langchain_tools_are_bound_to_the_context(self, ctx):
        lc_tools = ToolRegistry([EchoTool()]).to_langchain_tools(ctx)

        assert [t.name for t in lc_tools] == ["echo"]
        assert await lc_tools[0].ainvoke({"query": "ping"}) == "echo: ping"
        assert ctx.scratch["echoed"] == "ping"
