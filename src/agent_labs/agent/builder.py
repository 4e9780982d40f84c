"""
agent_labs.agent.builder - Fluent construction of ChatAgent instances.

    agent = (
        AgentBuilder(llm_factory)
        .with_name("TranslationAgent")
        .with_instructions("Translate the user's text ...")
        .with_temperature(0.5)
        .with_structured_output(TranslationResult)
        .build()
    )

The builder only collects options; the chat model itself is produced by
the injected llm_factory when build() is called.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel

from agent_labs.domain.agent_config import AgentConfiguration
from agent_labs.domain.exceptions import ConfigurationError
from agent_labs.domain.ports import ChatMessageStore
from agent_labs.agent.chat_agent import ChatAgent
from agent_labs.agent.tools.base import BaseTool
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.user_memory import UserMemoryProvider

logger = logging.getLogger(__name__)


class LLMFactory(Protocol):
    def __call__(
        self,
        *,
        deployment: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> BaseChatModel: ...


class AgentBuilder:
    """Collects agent options and builds a ChatAgent."""

    def __init__(self, llm_factory: LLMFactory):
        self._llm_factory = llm_factory
        self._agent_id: Optional[str] = None
        self._name = "Agent"
        self._description = ""
        self._instructions: Optional[str] = None
        self._deployment: Optional[str] = None
        self._temperature: Optional[float] = None
        self._top_p: Optional[float] = None
        self._max_output_tokens: Optional[int] = None
        self._schema: Optional[type[BaseModel]] = None
        self._schema_name: Optional[str] = None
        self._schema_description: Optional[str] = None
        self._tools: list[BaseTool] = []
        self._store: Optional[ChatMessageStore] = None
        self._history_window = 10
        self._max_iterations = 5
        self._user_memory: Optional[UserMemoryProvider] = None

    @classmethod
    def from_configuration(cls, llm_factory: LLMFactory, config: AgentConfiguration) -> AgentBuilder:
        """Pre-fill a builder from a catalogue entry (tools/schema excluded)."""
        builder = (
            cls(llm_factory)
            .with_id(config.agent_id)
            .with_name(config.name)
            .with_description(config.description)
            .with_deployment(config.chat_deployment_name)
            .with_temperature(config.temperature)
            .with_top_p(config.top_p)
            .with_max_output_tokens(config.max_output_tokens)
        )
        if config.instructions:
            builder.with_instructions(config.instructions)
        return builder

    # ── options ─────────────────────────────────────────────────────

    def with_id(self, agent_id: str) -> AgentBuilder:
        self._agent_id = agent_id
        return self

    def with_name(self, name: str) -> AgentBuilder:
        self._name = name
        return self

    def with_description(self, description: str) -> AgentBuilder:
        self._description = description
        return self

    def with_instructions(self, instructions: str) -> AgentBuilder:
        self._instructions = instructions
        return self

    def with_deployment(self, deployment: Optional[str]) -> AgentBuilder:
        self._deployment = deployment
        return self

    def with_temperature(self, temperature: Optional[float]) -> AgentBuilder:
        self._temperature = temperature
        return self

    def with_top_p(self, top_p: Optional[float]) -> AgentBuilder:
        self._top_p = top_p
        return self

    def with_max_output_tokens(self, max_tokens: Optional[int]) -> AgentBuilder:
        self._max_output_tokens = max_tokens
        return self

    def with_structured_output(
        self,
        schema: type[BaseModel],
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AgentBuilder:
        self._schema = schema
        self._schema_name = name or schema.__name__
        self._schema_description = description
        return self

    def with_tools(self, *tools: BaseTool) -> AgentBuilder:
        self._tools.extend(tools)
        return self

    def with_message_store(self, store: Optional[ChatMessageStore]) -> AgentBuilder:
        self._store = store
        return self

    def with_history_window(self, window: int) -> AgentBuilder:
        self._history_window = window
        return self

    def with_max_iterations(self, max_iterations: int) -> AgentBuilder:
        self._max_iterations = max_iterations
        return self

    def with_user_memory(self, provider: Optional[UserMemoryProvider]) -> AgentBuilder:
        self._user_memory = provider
        return self

    def with_defaults(
        self,
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AgentBuilder:
        """Fill sampling options only where nothing was configured."""
        if self._temperature is None:
            self._temperature = temperature
        if self._max_output_tokens is None:
            self._max_output_tokens = max_output_tokens
        return self

    # ── build ───────────────────────────────────────────────────────

    def build(self) -> ChatAgent:
        """Create the ChatAgent.

        Raises:
            ConfigurationError: If no instructions were provided.
        """
        if not self._instructions or not self._instructions.strip():
            raise ConfigurationError(f"Agent '{self._name}' has no instructions")

        llm = self._llm_factory(
            deployment=self._deployment,
            temperature=self._temperature,
            top_p=self._top_p,
            max_tokens=self._max_output_tokens,
        )
        agent_id = self._agent_id or self._name
        logger.info(
            "Built agent %s (deployment=%s, temperature=%s, tools=%s, schema=%s, memory=%s, user_memory=%s)",
            agent_id, self._deployment or "default", self._temperature,
            [t.name for t in self._tools], self._schema_name, self._store is not None,
            self._user_memory is not None,
        )
        return ChatAgent(
            agent_id=agent_id,
            name=self._name,
            description=self._description,
            instructions=self._instructions,
            llm=llm,
            tools=ToolRegistry(self._tools),
            message_store=self._store,
            history_window=self._history_window,
            max_iterations=self._max_iterations,
            response_schema=self._schema,
            user_memory=self._user_memory,
        )
