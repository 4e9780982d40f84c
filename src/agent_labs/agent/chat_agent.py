"""
agent_labs.agent.chat_agent - Agent execution engine.

The single class that runs the chat model + tool calling loop for one
configured agent. No component construction, no global state: the
model, tools and message store are injected by AgentBuilder, and all
per-request state flows through RequestContext.

One turn:
    1. load the last N messages of the thread (when the agent has memory)
    2. [system, *history, user] → model (tools bound when present); the
       system message carries the user's memories when user memory is on
    3. execute requested tools and feed ToolMessages back, until the model
       answers without tool calls or max_iterations is reached
    4. persist the user message and the final answer
    5. learn new facts about the user from their message (user memory)
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional
from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from pydantic import BaseModel

from agent_labs.application.context import FOLLOW_UP_KEY, PENDING_APPROVALS_KEY, RequestContext
from agent_labs.application.dto import AgentRunResult, ApprovalDecision, ApprovalRequest
from agent_labs.application.messages import content_to_text
from agent_labs.domain.exceptions import (
    AgentExecutionError,
    ApprovalError,
    ConfigurationError,
    DomainError,
)
from agent_labs.domain.ports import ChatMessageStore
from agent_labs.agent.approval import PendingApprovalStore, PendingTurn
from agent_labs.agent.tools.agent_tool import AgentTool
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.user_memory import UserMemoryProvider

logger = logging.getLogger(__name__)

ITERATION_LIMIT_MESSAGE = "Agent stopped due to iteration limit."


def _add_usage(usage: dict[str, int], message: AIMessage) -> None:
    meta = getattr(message, "usage_metadata", None) or {}
    for key in ("input_tokens", "output_tokens", "total_tokens"):
        if key in meta:
            usage[key] = usage.get(key, 0) + int(meta[key])


class ChatAgent:
    """A configured chat model with instructions, tools and optional memory.

    Constructed by AgentBuilder. Stateless per call, except for turns
    parked while waiting for human approval.
    """

    def __init__(
        self,
        *,
        agent_id: str,
        name: str,
        instructions: str,
        llm: BaseChatModel,
        description: str = "",
        tools: Optional[ToolRegistry] = None,
        message_store: Optional[ChatMessageStore] = None,
        history_window: int = 10,
        max_iterations: int = 5,
        response_schema: Optional[type[BaseModel]] = None,
        user_memory: Optional[UserMemoryProvider] = None,
    ):
        self.agent_id = agent_id
        self.name = name
        self.description = description
        self.instructions = instructions
        self._llm = llm
        self._tools = tools or ToolRegistry()
        self._store = message_store
        self._history_window = history_window
        self._max_iterations = max_iterations
        self._response_schema = response_schema
        self._approvals = PendingApprovalStore()
        self._user_memory = user_memory

    @property
    def tool_names(self) -> list[str]:
        return self._tools.names()

    @property
    def has_memory(self) -> bool:
        return self._store is not None

    @property
    def has_user_memory(self) -> bool:
        return self._user_memory is not None

    @property
    def supports_streaming(self) -> bool:
        """Plain text agents only: no tools, no structured output."""
        return self._response_schema is None and len(self._tools) == 0

    def has_pending_approval(self, context_id: str) -> bool:
        return context_id in self._approvals

    @property
    def requires_approval(self) -> bool:
        return self._tools.requires_approval

    def as_tool(self, name: str, description: str) -> AgentTool:
        """Wrap this agent as a tool another agent can call.

        Raises:
            ConfigurationError: If this agent has approval-gated tools;
                a detached turn has no context to park them on.
        """
        if self.requires_approval:
            raise ConfigurationError(
                f"Agent '{self.agent_id}' has tools requiring approval "
                f"and cannot be used as tool '{name}'"
            )
        return AgentTool(self, name=name, description=description)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, message: str, *, ctx: RequestContext) -> AgentRunResult:
        """Process a user message and return the agent's answer.

        Loads the thread's recent history and persists the turn when the
        agent has a message store. ctx.context_id is updated with the
        thread id actually used.
        """
        logger.info(
            "Agent %s processing (context=%s): %s",
            self.agent_id, ctx.context_id, message[:80],
        )
        if ctx.context_id and self._approvals.pop(ctx.context_id) is not None:
            logger.warning(
                "New message on context %s: dropping the turn awaiting approval",
                ctx.context_id,
            )

        history = await self._load_history(ctx)
        request = HumanMessage(content=message)
        messages: list[BaseMessage] = [await self._system_message(ctx), *history, request]
        return await self._complete(ctx, messages, request, persist=True)

    async def run_detached(self, message: str, *, ctx: RequestContext) -> AgentRunResult:
        """Run one turn without reading or writing the thread (agent-as-tool)."""
        request = HumanMessage(content=message)
        messages: list[BaseMessage] = [SystemMessage(content=self.instructions), request]
        return await self._complete(ctx, messages, request, persist=False)

    async def run_conversation(
        self, conversation: list[BaseMessage], *, ctx: RequestContext,
    ) -> AgentRunResult:
        """Answer an explicit conversation (workflows); nothing is persisted."""
        requests = [m for m in conversation if isinstance(m, HumanMessage)]
        request = requests[-1] if requests else HumanMessage(content="")
        messages: list[BaseMessage] = [SystemMessage(content=self.instructions), *conversation]
        return await self._complete(ctx, messages, request, persist=False)

    async def resume(
        self, ctx: RequestContext, decisions: list[ApprovalDecision],
    ) -> AgentRunResult:
        """Continue a turn parked for approval.

        Approved calls are executed; rejected (or undecided) calls are
        answered with a rejection so the model can tell the user.

        Raises:
            ApprovalError: If nothing is pending for ctx.context_id or a
                decision references an unknown call id.
        """
        if not ctx.context_id:
            raise ApprovalError("A context id is required to resume a turn.")
        turn = self._approvals.get(ctx.context_id)
        if turn is None:
            raise ApprovalError(f"No pending approval for context '{ctx.context_id}'")

        known = {a.call_id for a in turn.approvals}
        unknown = [d.call_id for d in decisions if d.call_id not in known]
        if unknown:
            raise ApprovalError(f"Unknown approval id(s): {', '.join(unknown)}")
        self._approvals.pop(ctx.context_id)

        approved = {d.call_id for d in decisions if d.approved}
        for req in turn.approvals:
            if req.call_id in approved:
                logger.info("Approved call %s (%s)", req.call_id, req.tool_name)
                output = await self._invoke_tool(ctx, req.tool_name, req.arguments)
            else:
                logger.info("Rejected call %s (%s)", req.call_id, req.tool_name)
                output = (
                    f"The user rejected the call to '{req.tool_name}'. "
                    "It was not executed; tell the user."
                )
            turn.messages.append(ToolMessage(content=output, tool_call_id=req.call_id))

        return await self._complete(
            ctx, turn.messages, turn.request,
            persist=turn.persist, iterations_used=turn.iterations_used,
        )

    async def stream(self, message: str, *, ctx: RequestContext) -> AsyncIterator[str]:
        """Yield the answer as text chunks, then persist the full turn."""
        if not self.supports_streaming:
            raise AgentExecutionError(f"Agent '{self.agent_id}' does not support streaming")

        history = await self._load_history(ctx)
        request = HumanMessage(content=message)
        messages: list[BaseMessage] = [await self._system_message(ctx), *history, request]

        parts: list[str] = []
        try:
            async for chunk in self._llm.astream(messages):
                text = content_to_text(chunk.content)
                if text:
                    parts.append(text)
                    yield text
        except Exception as exc:
            logger.exception("Streaming failed for agent %s", self.agent_id)
            raise AgentExecutionError(f"Agent '{self.agent_id}' failed: {exc}") from exc

        await self._persist(ctx, request, "".join(parts))
        await self._learn(ctx, request)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load_history(self, ctx: RequestContext) -> list[BaseMessage]:
        if self._store is None or not ctx.context_id or ctx.is_new_context:
            return []
        history = await self._store.get_recent(ctx.context_id, self._history_window)
        if history:
            ctx.scratch[FOLLOW_UP_KEY] = True
            logger.info(
                "Loaded %d message(s) for context %s", len(history), ctx.context_id,
            )
        return history

    async def _system_message(self, ctx: RequestContext) -> SystemMessage:
        if self._user_memory is None:
            return SystemMessage(content=self.instructions)
        memories = await self._user_memory.recall(ctx)
        return SystemMessage(content=self._user_memory.instructions(self.instructions, memories))

    async def _learn(self, ctx: RequestContext, request: HumanMessage) -> None:
        if self._user_memory is not None:
            await self._user_memory.learn(ctx, content_to_text(request.content))

    async def _persist(self, ctx: RequestContext, request: HumanMessage, answer: str) -> None:
        if self._store is None:
            return
        ctx.context_id = await self._store.append(
            ctx.context_id, [request, AIMessage(content=answer)],
        )

    async def _complete(
        self,
        ctx: RequestContext,
        messages: list[BaseMessage],
        request: HumanMessage,
        *,
        persist: bool,
        iterations_used: int = 0,
    ) -> AgentRunResult:
        usage: dict[str, int] = {}
        called: list[str] = []
        structured: Optional[dict] = None
        final_text = ""

        try:
            if len(self._tools) or self._response_schema is None:
                model = (
                    self._llm.bind_tools(self._tools.to_langchain_tools(ctx))
                    if len(self._tools) else self._llm
                )
                iterations = iterations_used
                while True:
                    ai = await model.ainvoke(messages)
                    iterations += 1
                    _add_usage(usage, ai)
                    messages.append(ai)

                    if not ai.tool_calls:
                        final_text = content_to_text(ai.content)
                        break

                    pending = await self._run_tool_calls(ctx, ai, messages, called)
                    if pending:
                        ctx.context_id = ctx.context_id or uuid4().hex
                        ctx.scratch[PENDING_APPROVALS_KEY] = pending
                        self._approvals.put(ctx.context_id, PendingTurn(
                            messages=messages,
                            request=request,
                            approvals=pending,
                            iterations_used=iterations,
                            persist=persist,
                        ))
                        return AgentRunResult(
                            agent_id=self.agent_id,
                            context_id=ctx.context_id,
                            pending_approvals=pending,
                            tool_calls=called,
                            usage=usage,
                        )

                    if iterations >= self._max_iterations:
                        logger.warning(
                            "Agent %s hit max_iterations=%d", self.agent_id, self._max_iterations,
                        )
                        final_text = ITERATION_LIMIT_MESSAGE
                        break

            if self._response_schema is not None:
                parsed = await self._llm.with_structured_output(
                    self._response_schema,
                ).ainvoke(messages)
                structured = (
                    parsed.model_dump() if isinstance(parsed, BaseModel) else dict(parsed)
                )
                final_text = json.dumps(structured, ensure_ascii=False)
        except DomainError:
            raise
        except Exception as exc:
            logger.exception("Agent %s failed", self.agent_id)
            raise AgentExecutionError(f"Agent '{self.agent_id}' failed: {exc}") from exc

        if persist:
            await self._persist(ctx, request, final_text)
            await self._learn(ctx, request)

        return AgentRunResult(
            agent_id=self.agent_id,
            context_id=ctx.context_id,
            text=final_text,
            structured=structured,
            tool_calls=called,
            usage=usage,
        )

    async def _run_tool_calls(
        self,
        ctx: RequestContext,
        ai: AIMessage,
        messages: list[BaseMessage],
        called: list[str],
    ) -> list[ApprovalRequest]:
        """Execute the model's tool calls; return those that need approval."""
        pending: list[ApprovalRequest] = []
        for call in ai.tool_calls:
            name = call["name"]
            args = dict(call.get("args") or {})
            call_id = call.get("id") or uuid4().hex
            called.append(name)

            if name not in self._tools:
                messages.append(ToolMessage(
                    content=f"Error: tool '{name}' does not exist.", tool_call_id=call_id,
                ))
                continue

            if self._tools.get(name).requires_approval:
                pending.append(ApprovalRequest(call_id=call_id, tool_name=name, arguments=args))
                continue

            output = await self._invoke_tool(ctx, name, args)
            messages.append(ToolMessage(content=output, tool_call_id=call_id))
        return pending

    async def _invoke_tool(self, ctx: RequestContext, name: str, args: dict) -> str:
        """Run a tool; failures are logged and reported back to the model."""
        logger.info("Agent %s calling tool %s(%s)", self.agent_id, name, args)
        try:
            return await self._tools.invoke(name, ctx, **args)
        except Exception as exc:
            logger.exception("Tool %s failed", name)
            return f"Error while running '{name}': {exc}"
