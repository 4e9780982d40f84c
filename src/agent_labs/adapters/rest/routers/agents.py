"""Agent chat endpoints for the front-end: list, chat, approvals, SSE stream."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from agent_labs.application.context import RequestContext
from agent_labs.application.dto import AgentRunResult, ApprovalDecision
from agent_labs.domain.exceptions import DomainError
from agent_labs.factory import ServiceFactory
from agent_labs.adapters.rest.dependencies import get_factory, get_request_context
from agent_labs.adapters.rest.schemas import (
    AgentOut,
    ApprovalBody,
    ChatBody,
    ChatResponse,
    PendingApprovalOut,
)

router = APIRouter(prefix="/api/agents", tags=["agents"])
logger = logging.getLogger(__name__)


def _to_response(result: AgentRunResult) -> ChatResponse:
    return ChatResponse(
        agent_id=result.agent_id,
        context_id=result.context_id,
        response=result.text,
        structured=result.structured,
        pending_approvals=[
            PendingApprovalOut(call_id=a.call_id, tool_name=a.tool_name, arguments=a.arguments)
            for a in result.pending_approvals
        ],
        tool_calls=result.tool_calls,
    )


def _require_message(message: str) -> None:
    if not message or not message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message cannot be empty.",
        )


@router.get("", response_model=list[AgentOut])
async def list_agents(factory: ServiceFactory = Depends(get_factory)):
    agent_factory = factory.create_agent_factory()
    return [
        AgentOut(
            id=c.agent_id,
            name=c.name,
            description=c.description,
            streaming=c.streaming,
            memory=c.memory,
            user_memory=c.user_memory,
            tools=list(c.tools),
        )
        for c in agent_factory.configurations()
    ]


@router.post("/{agent_id}/chat", response_model=ChatResponse)
async def chat(
    agent_id: str,
    body: ChatBody,
    ctx: RequestContext = Depends(get_request_context),
    factory: ServiceFactory = Depends(get_factory),
):
    _require_message(body.message)
    agent, _ = factory.create_agent_factory().get(agent_id)

    logger.info("Chat %s ctx=%s | %s", agent_id, ctx.context_id, body.message[:200])
    result = await agent.run(body.message, ctx=ctx)
    return _to_response(result)


@router.post("/{agent_id}/approvals", response_model=ChatResponse)
async def submit_approvals(
    agent_id: str,
    body: ApprovalBody,
    ctx: RequestContext = Depends(get_request_context),
    factory: ServiceFactory = Depends(get_factory),
):
    """Approve or reject the tool calls a previous chat turn parked."""
    agent, _ = factory.create_agent_factory().get(agent_id)
    if not agent.has_pending_approval(body.context_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No pending approval for context '{body.context_id}'",
        )

    ctx.context_id = body.context_id
    ctx.is_new_context = False
    decisions = [ApprovalDecision(call_id=d.call_id, approved=d.approved) for d in body.decisions]
    result = await agent.resume(ctx, decisions)
    return _to_response(result)


@router.post("/{agent_id}/stream")
async def stream(
    agent_id: str,
    body: ChatBody,
    ctx: RequestContext = Depends(get_request_context),
    factory: ServiceFactory = Depends(get_factory),
):
    """Stream the answer as Server-Sent Events.

    Events: ``data: {"text": chunk}`` per chunk, then
    ``data: {"contextId": id}``; a failure mid-stream ends with
    ``event: error``.
    """
    _require_message(body.message)
    agent, _ = factory.create_agent_factory().get(agent_id)
    if not agent.supports_streaming:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Agent '{agent_id}' does not support streaming",
        )

    async def event_stream():
        try:
            async for chunk in agent.stream(body.message, ctx=ctx):
                yield f"data: {json.dumps({'text': chunk}, ensure_ascii=False)}\n\n"
            yield f"data: {json.dumps({'contextId': ctx.context_id})}\n\n"
        except DomainError as exc:
            logger.error("Stream for agent %s failed: %s", agent_id, exc)
            yield f"event: error\ndata: {json.dumps({'error': str(exc)}, ensure_ascii=False)}\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
