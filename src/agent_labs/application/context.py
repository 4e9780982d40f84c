"""
agent_labs.application.context - Request-scoped agent context.

Every agent run and tool call receives its context explicitly. Two
concurrent requests get two different RequestContext instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

# scratch key: the thread already has history, so this turn is a follow-up
FOLLOW_UP_KEY = "is_follow_up"
# scratch key: tool calls parked until a human approves or rejects them
PENDING_APPROVALS_KEY = "pending_approvals"


@dataclass
class RequestContext:
    """Per-request context passed through all layers.

    Attributes:
        context_id:      Conversation/thread key (None until the first save).
        is_new_context:  True when the server generated the context id.
        request_type:    "A2A", "Frontend" or "Unknown" (where the id came from).
        username:        Owner extracted from a signed "username|timestamp" id.
        request_id:      Unique per request, for tracing/logging.
        scratch:         Request-scoped scratchpad for inter-tool data sharing.
    """
    context_id: Optional[str] = None
    is_new_context: bool = True
    request_type: str = "Unknown"
    username: Optional[str] = None
    request_id: str = field(default_factory=lambda: uuid4().hex)
    scratch: dict[str, Any] = field(default_factory=dict)

    @property
    def is_follow_up(self) -> bool:
        return bool(self.scratch.get(FOLLOW_UP_KEY))
