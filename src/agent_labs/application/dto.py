"""
agent_labs.application.dto - Data transfer objects between layers.

Plain dataclasses returned by services and agents to the adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from agent_labs.domain.entities import StoredMessage


@dataclass
class ThreadMessages:
    thread_id: str
    messages: list[StoredMessage] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class ApprovalRequest:
    """A tool call waiting for a human decision."""
    call_id: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApprovalDecision:
    call_id: str
    approved: bool


@dataclass
class AgentRunResult:
    """Outcome of one agent turn.

    text:               Final answer (empty while approvals are pending).
    structured:         Parsed structured output, when the agent has a schema.
    pending_approvals:  Tool calls waiting for a human decision.
    """
    agent_id: str
    context_id: Optional[str]
    text: str = ""
    structured: Optional[dict[str, Any]] = None
    pending_approvals: list[ApprovalRequest] = field(default_factory=list)
    tool_calls: list[str] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def awaiting_approval(self) -> bool:
        return bool(self.pending_approvals)
