"""Pydantic models for REST API request/response validation.

JSON field names are camelCase (contextId, pendingApprovals, ...) to
match the chat front-ends; Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Agents ---

class AgentOut(_CamelModel):
    id: str
    name: str
    description: str
    streaming: bool
    memory: bool
    user_memory: bool = False
    tools: list[str] = Field(default_factory=list)


class ChatBody(_CamelModel):
    message: str
    context_id: Optional[str] = None


class PendingApprovalOut(_CamelModel):
    call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ChatResponse(_CamelModel):
    agent_id: str
    context_id: Optional[str]
    response: str
    structured: Optional[dict[str, Any]] = None
    pending_approvals: list[PendingApprovalOut] = Field(default_factory=list)
    tool_calls: list[str] = Field(default_factory=list)


class DecisionIn(_CamelModel):
    call_id: str
    approved: bool


class ApprovalBody(_CamelModel):
    context_id: str = Field(..., min_length=1)
    decisions: list[DecisionIn] = Field(default_factory=list)


# --- Threads ---

class ThreadMessageOut(_CamelModel):
    key: str
    timestamp: int
    role: str
    message_text: str
    serialized_message: str


class ThreadMessagesOut(_CamelModel):
    thread_id: str
    message_count: int
    messages: list[ThreadMessageOut]


class ThreadSummaryOut(_CamelModel):
    thread_id: str
    message_count: int
    last_timestamp: int


class ThreadClearedOut(_CamelModel):
    thread_id: str
    deleted_count: int


# --- Context ids ---

class ContextIdBody(_CamelModel):
    username: str = Field(..., min_length=1)


class ContextIdOut(_CamelModel):
    context_id: str
    signature: str
