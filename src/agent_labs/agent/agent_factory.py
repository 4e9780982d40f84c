"""
agent_labs.agent.agent_factory - Builds agents from the catalogue.

Each catalogue entry names the tools it may call. A name is resolved
against the shared ToolRegistry first; the sub-agent tool names
(order_agent, policy_agent, message_formulator_agent) build the matching
specialist agent and wrap it with ChatAgent.as_tool().

Agents are built lazily on first use and cached for the process lifetime.
"""

from __future__ import annotations

import logging
from typing import Optional

from agent_labs.domain.agent_config import AgentCard, AgentConfiguration
from agent_labs.domain.exceptions import AgentNotFoundError, ConfigurationError
from agent_labs.domain.ports import ChatMessageStore
from agent_labs.agent.builder import AgentBuilder, LLMFactory
from agent_labs.agent.chat_agent import ChatAgent
from agent_labs.agent.schemas import STRUCTURED_OUTPUTS
from agent_labs.agent.tools.agent_tool import AGENT_TOOL_DESCRIPTIONS
from agent_labs.agent.tools.base import BaseTool
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.user_memory import UserMemoryProvider

logger = logging.getLogger(__name__)

# agent id → (temperature, max output tokens) when the catalogue leaves them unset
_DEFAULT_SAMPLING: dict[str, tuple[float, int]] = {
    "translation": (0.5, 1000),
    "customer-support": (0.7, 800),
    "history": (0.7, 1500),
    "order": (0.3, 800),
    "policy": (0.3, 800),
    "message-formulator": (0.7, 800),
}

# tool name → sub-agent id
_AGENT_TOOLS = {tool_name: agent_id for agent_id, (tool_name, _) in AGENT_TOOL_DESCRIPTIONS.items()}


class AgentFactory:
    """Creates and caches ChatAgents described by AgentConfiguration entries."""

    def __init__(
        self,
        configs: dict[str, AgentConfiguration],
        llm_factory: LLMFactory,
        tools: Optional[ToolRegistry] = None,
        message_store: Optional[ChatMessageStore] = None,
        user_memory: Optional[UserMemoryProvider] = None,
        history_window: int = 10,
        max_iterations: int = 5,
    ):
        self._configs = configs
        self._llm_factory = llm_factory
        self._tools = tools or ToolRegistry()
        self._message_store = message_store
        self._user_memory = user_memory
        self._history_window = history_window
        self._max_iterations = max_iterations
        self._agents: dict[str, tuple[ChatAgent, AgentCard]] = {}
        self._building: set[str] = set()

    @property
    def agent_ids(self) -> list[str]:
        return list(self._configs.keys())

    def configurations(self) -> list[AgentConfiguration]:
        return list(self._configs.values())

    def configuration(self, agent_id: str) -> AgentConfiguration:
        config = self._configs.get(agent_id)
        if config is None:
            raise AgentNotFoundError(
                f"Agent configuration '{agent_id}' not found. "
                f"Available agents: {', '.join(self._configs) or '(none)'}"
            )
        return config

    def get(self, agent_id: str) -> tuple[ChatAgent, AgentCard]:
        """Return the agent and its A2A card, building it on first use.

        Raises:
            AgentNotFoundError: If agent_id is not in the catalogue.
            ConfigurationError: If the entry references an unknown tool or
                schema, uses a sub-agent with approval-gated tools, or
                sub-agents reference each other in a cycle.
        """
        cached = self._agents.get(agent_id)
        if cached is not None:
            return cached

        config = self.configuration(agent_id)
        if agent_id in self._building:
            raise ConfigurationError(f"Circular sub-agent reference involving '{agent_id}'")

        self._building.add(agent_id)
        try:
            agent = self._build(config)
        finally:
            self._building.discard(agent_id)

        entry = (agent, config.card())
        self._agents[agent_id] = entry
        return entry

    # ── named agents ────────────────────────────────────────────────

    def translation_agent(self) -> ChatAgent:
        return self.get("translation")[0]

    def customer_support_agent(self) -> ChatAgent:
        return self.get("customer-support")[0]

    def history_agent(self) -> ChatAgent:
        return self.get("history")[0]

    def order_agent(self) -> ChatAgent:
        return self.get("order")[0]

    def policy_agent(self) -> ChatAgent:
        return self.get("policy")[0]

    def message_formulator_agent(self) -> ChatAgent:
        return self.get("message-formulator")[0]

    # ── internals ───────────────────────────────────────────────────

    def _build(self, config: AgentConfiguration) -> ChatAgent:
        builder = (
            AgentBuilder.from_configuration(self._llm_factory, config)
            .with_history_window(self._history_window)
            .with_max_iterations(self._max_iterations)
        )

        defaults = _DEFAULT_SAMPLING.get(config.agent_id)
        if defaults is not None:
            builder.with_defaults(temperature=defaults[0], max_output_tokens=defaults[1])

        if config.structured_output:
            schema_entry = STRUCTURED_OUTPUTS.get(config.structured_output)
            if schema_entry is None:
                raise ConfigurationError(
                    f"Unknown structured output '{config.structured_output}' "
                    f"for agent '{config.agent_id}'"
                )
            schema, description = schema_entry
            builder.with_structured_output(schema, config.structured_output, description)

        if config.tools:
            builder.with_tools(*(self._resolve_tool(config, name) for name in config.tools))

        if config.memory:
            if self._message_store is None:
                logger.warning(
                    "Agent %s wants memory but no message store is configured",
                    config.agent_id,
                )
            builder.with_message_store(self._message_store)

        if config.user_memory:
            if self._user_memory is None:
                logger.warning(
                    "Agent %s wants user memory but no memory provider is configured",
                    config.agent_id,
                )
            builder.with_user_memory(self._user_memory)

        return builder.build()

    def _resolve_tool(self, config: AgentConfiguration, name: str) -> BaseTool:
        if name in self._tools:
            return self._tools.get(name)

        sub_agent_id = _AGENT_TOOLS.get(name)
        if sub_agent_id is not None:
            sub_agent, _ = self.get(sub_agent_id)
            _, description = AGENT_TOOL_DESCRIPTIONS[sub_agent_id]
            return sub_agent.as_tool(name, description)

        raise ConfigurationError(f"Unknown tool '{name}' for agent '{config.agent_id}'")
