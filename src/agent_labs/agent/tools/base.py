"""
agent_labs.agent.tools.base - Base tool interface and result container.

All agent tools inherit from BaseTool and return ToolResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

from agent_labs.application.context import RequestContext


@dataclass
class ToolResult:
    """Result returned by a tool execution.

    output:    String shown to the model (markdown, text).
    data:      Structured data for inter-tool communication (not passed through LLM).
    store_as:  If set, data is automatically stored in ctx.scratch[store_as].
    """
    output: str
    data: Any = None
    store_as: Optional[str] = None


class QueryInput(BaseModel):
    """Single free-text argument, shared by search-style tools."""

    query: str = Field(description="La question ou demande du client.")


class BaseTool(ABC):
    """Abstract base for all agent tools.

    Tools with requires_approval=True are never executed directly by the
    agent loop: the call is parked until a human approves it.
    """

    name: str
    description: str
    requires_approval: bool = False

    @abstractmethod
    async def execute(self, ctx: RequestContext, **kwargs) -> ToolResult:
        """Execute the tool with the given request context and arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...
