"""
agent_labs.agent.approval - Parked agent turns waiting for human approval.

When the model asks for a tool marked requires_approval, the turn stops
and its message list is kept here, keyed by context id, until
ChatAgent.resume() receives the decisions. Process-local: a restart
drops pending approvals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from langchain_core.messages import BaseMessage, HumanMessage

from agent_labs.application.dto import ApprovalRequest

logger = logging.getLogger(__name__)


@dataclass
class PendingTurn:
    messages: list[BaseMessage]
    request: HumanMessage
    approvals: list[ApprovalRequest] = field(default_factory=list)
    iterations_used: int = 0
    persist: bool = True


class PendingApprovalStore:
    """In-memory map of context id → parked turn."""

    def __init__(self):
        self._turns: dict[str, PendingTurn] = {}

    def __contains__(self, context_id: str) -> bool:
        return context_id in self._turns

    def put(self, context_id: str, turn: PendingTurn) -> None:
        self._turns[context_id] = turn
        logger.info(
            "Parked turn for context %s (%d approval(s) pending)",
            context_id, len(turn.approvals),
        )

    def get(self, context_id: str) -> Optional[PendingTurn]:
        return self._turns.get(context_id)

    def pop(self, context_id: str) -> Optional[PendingTurn]:
        return self._turns.pop(context_id, None)
