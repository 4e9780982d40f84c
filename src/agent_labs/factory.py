"""
agent_labs.factory - Composition root for the agent labs backend.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services and agents.

Usage:
    from agent_labs.factory import ServiceFactory
    from agent_labs.infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    agent, card = factory.create_agent_factory().get("customer-support")
    result = await agent.run("Où en est ma commande ORD-2026-001 ?", ctx=ctx)
"""

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from agent_labs.domain.agent_config import AgentConfiguration
from agent_labs.domain.exceptions import ConfigurationError, WorkflowError
from agent_labs.infrastructure.config import Settings, load_agents_config
from agent_labs.infrastructure.llm.llm_builder import build_embeddings, build_llm_from_settings
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection
from agent_labs.infrastructure.persistence.migrations import run_migrations
from agent_labs.infrastructure.persistence.chat_history_repo import (
    SQLiteChatMessageStore,
    SQLiteThreadRepository,
)
from agent_labs.infrastructure.persistence.order_repo import SQLiteOrderRepository, seed_orders
from agent_labs.infrastructure.persistence.user_memory_repo import SQLiteUserMemoryRepository
from agent_labs.infrastructure.vector_store.policy_store import (
    PolicyVectorStore,
    build_policy_stores,
    initialize_vector_stores,
)
from agent_labs.application.services.context_ids import ContextIdSigner
from agent_labs.application.services.thread_history import ThreadHistoryService
from agent_labs.agent.agent_factory import AgentFactory
from agent_labs.agent.tools.orders import (
    GetOrderByIdTool,
    GetOrderStatusTool,
    SearchOrdersByCustomerTool,
)
from agent_labs.agent.tools.policy import (
    order_cancellation_policy_tool,
    refund_policy_tool,
    return_policy_tool,
)
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.tools.seller_requirements import SellerRequirementsTool
from agent_labs.agent.tools.sensitive import DeleteEmployeeDataTool
from agent_labs.agent.user_memory import UserMemoryProvider
from agent_labs.agent.workflows import Workflow, build_concurrent, build_sequential

logger = logging.getLogger(__name__)

# workflow type → (workflow name, agent ids in order)
WORKFLOWS: dict[str, tuple[str, tuple[str, ...]]] = {
    "sequential": (
        "meeting-transcript-workflow",
        ("summary", "actions-extractor"),
    ),
    "concurrent": (
        "ecommerce-after-sales-concurrent-workflow",
        ("return-exchange", "refund", "follow-up"),
    ),
}

_POLICY_TOOLS = {
    "return_policy": return_policy_tool,
    "refund_policy": refund_policy_tool,
    "order_cancellation_policy": order_cancellation_policy_tool,
}


class ServiceFactory:
    """Composition root that wires all dependencies together.

    Call initialize() once at startup, then create services/agents as needed.
    """

    def __init__(
        self,
        config: Settings,
        agent_configs: Optional[dict[str, AgentConfiguration]] = None,
        embeddings: Optional[Embeddings] = None,
    ):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)
        self._agent_configs = agent_configs
        self._embeddings = embeddings

        self._policy_stores: dict[str, PolicyVectorStore] = {}
        self._indexed: dict[str, int] = {}
        self._agent_factory: Optional[AgentFactory] = None
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def indexed_collections(self) -> dict[str, int]:
        """Sections indexed per collection during initialize() (empty when only loaded)."""
        return dict(self._indexed)

    async def initialize(self, *, rebuild_indexes: bool = False) -> None:
        """One-time startup: agents catalogue, migrations, seed data, vector stores.

        Must be called before creating services or agents.

        Raises:
            ConfigurationError: If the agents catalogue or a provider setting is
                invalid, or signed context ids are required without a signing key.
        """
        logger.info("Initializing ServiceFactory...")
        self._config.log_summary()

        if self._config.require_signed_context:
            # raises when CONTEXT_ID_SIGNING_KEY is missing
            self.create_context_signer()

        if self._agent_configs is None:
            self._agent_configs = load_agents_config(self._config.agents_config_path)

        await self.initialize_database()

        if self._embeddings is None:
            try:
                self._embeddings = build_embeddings(self._config)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc
        self._policy_stores = build_policy_stores(self._config, self._embeddings)
        self._indexed = await initialize_vector_stores(
            self._config, self._policy_stores, force=rebuild_indexes,
        )
        logger.info("Vector stores ready")

        self._initialized = True
        logger.info("ServiceFactory ready")

    async def initialize_database(self) -> None:
        """Migrations and order seed data only (no models, no vector stores)."""
        await run_migrations(self._connection)
        logger.info("Database migrations complete")

        orders_file = self._config.data_dir / "orders.json"
        if orders_file.is_file():
            await seed_orders(SQLiteOrderRepository(self._connection), orders_file)
        else:
            logger.warning("No order seed file at %s", orders_file)

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_message_store(self) -> SQLiteChatMessageStore:
        """Conversation store used by agents with memory."""
        return SQLiteChatMessageStore(self._connection)

    def create_thread_history_service(self) -> ThreadHistoryService:
        """Create a ThreadHistoryService for the threads endpoints."""
        return ThreadHistoryService(SQLiteThreadRepository(self._connection))

    def create_order_repository(self) -> SQLiteOrderRepository:
        return SQLiteOrderRepository(self._connection)

    def create_user_memory_repository(self) -> SQLiteUserMemoryRepository:
        return SQLiteUserMemoryRepository(self._connection)

    def create_user_memory_provider(self) -> UserMemoryProvider:
        """Memory provider for agents with "userMemory"; extraction uses the default chat model."""
        return UserMemoryProvider(
            self.create_user_memory_repository(),
            extractor=self._build_chat_model(temperature=0.0),
        )

    def create_context_signer(self) -> ContextIdSigner:
        """Raises ConfigurationError when CONTEXT_ID_SIGNING_KEY is not set."""
        return ContextIdSigner(self._config.context_id_signing_key)

    def create_tool_registry(self) -> ToolRegistry:
        """All leaf tools (orders, policies, seller requirements, sensitive)."""
        self._ensure_initialized()
        orders = self.create_order_repository()

        registry = ToolRegistry()
        registry.register(GetOrderByIdTool(orders))
        registry.register(GetOrderStatusTool(orders))
        registry.register(SearchOrdersByCustomerTool(orders))
        registry.register(DeleteEmployeeDataTool())

        for key, make_tool in _POLICY_TOOLS.items():
            store = self._policy_stores.get(key)
            if store is not None:
                registry.register(make_tool(store))

        seller_store = self._policy_stores.get("seller_requirements")
        if seller_store is not None:
            registry.register(SellerRequirementsTool(seller_store))

        return registry

    # ------------------------------------------------------------------
    # Agent creation
    # ------------------------------------------------------------------

    def create_agent_factory(self) -> AgentFactory:
        """The process-wide AgentFactory (agents and parked approvals are cached there)."""
        self._ensure_initialized()
        if self._agent_factory is None:
            configs = self._agent_configs or {}
            wants_user_memory = any(c.user_memory for c in configs.values())
            self._agent_factory = AgentFactory(
                configs=configs,
                llm_factory=self._build_chat_model,
                tools=self.create_tool_registry(),
                message_store=self.create_message_store(),
                user_memory=self.create_user_memory_provider() if wants_user_memory else None,
                history_window=self._config.chat_history_window,
                max_iterations=self._config.agent_max_iterations,
            )
        return self._agent_factory

    def create_workflow(self, kind: str) -> Workflow:
        """Build the "sequential" or "concurrent" demo workflow.

        Raises:
            WorkflowError: If kind is unknown.
            AgentNotFoundError: If a workflow agent is missing from the catalogue.
        """
        entry = WORKFLOWS.get(kind)
        if entry is None:
            raise WorkflowError(
                f"Unknown workflow type '{kind}'. Must be one of: {', '.join(WORKFLOWS)}"
            )
        name, agent_ids = entry
        agent_factory = self.create_agent_factory()
        agents = [agent_factory.get(agent_id)[0] for agent_id in agent_ids]

        if kind == "sequential":
            return build_sequential(name, agents)
        return build_concurrent(name, agents)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_chat_model(
        self,
        *,
        deployment: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> BaseChatModel:
        try:
            return build_llm_from_settings(
                self._config,
                deployment=deployment,
                temperature=temperature,
                top_p=top_p,
                max_tokens=max_tokens,
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
