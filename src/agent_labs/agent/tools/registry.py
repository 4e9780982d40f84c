"""
agent_labs.agent.tools.registry - Tool registration, discovery, and invocation.

Central registry that manages all available tools and provides
LangChain-compatible tool wrappers for ``bind_tools``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from langchain_core.tools import StructuredTool

from agent_labs.application.context import RequestContext
from agent_labs.agent.tools.base import BaseTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Manages tool registration and invocation."""

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def register(self, tool: BaseTool) -> None:
        """Register a tool by its name."""
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get(self, name: str) -> BaseTool:
        """Get a tool by name."""
        if name not in self._tools:
            raise KeyError(f"Tool '{name}' not registered")
        return self._tools[name]

    def all(self) -> list[BaseTool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return list(self._tools.keys())

    @property
    def requires_approval(self) -> bool:
        """True when any registered tool waits for human approval."""
        return any(t.requires_approval for t in self._tools.values())

    def subset(self, names: Iterable[str]) -> ToolRegistry:
        """A new registry holding only the named tools (KeyError if unknown)."""
        return ToolRegistry(self.get(n) for n in names)

    async def invoke(self, name: str, ctx: RequestContext, **kwargs) -> str:
        """Invoke a tool by name and auto-store results in ctx.scratch.

        Returns the string output (what the LLM sees).
        """
        tool = self.get(name)
        result = await tool.execute(ctx, **kwargs)

        if result.store_as and result.data is not None:
            ctx.scratch[result.store_as] = result.data
            logger.debug("Stored result in ctx.scratch['%s']", result.store_as)

        return result.output

    def to_langchain_tools(self, ctx: RequestContext) -> list[StructuredTool]:
        """Convert all registered tools to LangChain StructuredTools.

        Binds the RequestContext so the tools can be called directly, and
        exposes the name/description/schema the model routes on.
        """
        lc_tools = []
        for tool in self._tools.values():

            def _make_coroutine(t: BaseTool, context: RequestContext):
                async def coroutine(**kwargs: Any) -> str:
                    return await self.invoke(t.name, context, **kwargs)
                return coroutine

            lc_tools.append(StructuredTool.from_function(
                coroutine=_make_coroutine(tool, ctx),
                name=tool.name,
                description=tool.description,
                args_schema=tool.get_schema(),
            ))
        return lc_tools
