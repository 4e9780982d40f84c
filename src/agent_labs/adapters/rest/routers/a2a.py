"""
Agent-to-agent (A2A) surface: agent cards and JSON-RPC 2.0.

    GET  /a2a/{agent_id}/.well-known/agent-card.json
    POST /a2a/{agent_id}   {"jsonrpc": "2.0", "id": 1, "method": "message/send",
                            "params": {"message": {"role": "user",
                                       "parts": [{"kind": "text", "text": "..."}]},
                                       "contextId": "..."}}

message/send answers with a single agent message. message/stream answers
with Server-Sent Events, each a JSON-RPC response, ending with a
status-update whose "final" is true. Errors use the standard JSON-RPC
codes and are returned with HTTP 200.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from agent_labs.application.context import RequestContext
from agent_labs.application.dto import AgentRunResult
from agent_labs.domain.exceptions import DomainError
from agent_labs.factory import ServiceFactory
from agent_labs.adapters.rest.dependencies import get_factory, get_request_context

router = APIRouter(prefix="/a2a", tags=["a2a"])
logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_METHODS = ("message/send", "message/stream")


# ── JSON-RPC helpers ────────────────────────────────────────────────

def _rpc_result(rpc_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _rpc_error(rpc_id: Any, code: int, message: str) -> JSONResponse:
    return JSONResponse({
        "jsonrpc": "2.0",
        "id": rpc_id,
        "error": {"code": code, "message": message},
    })


def _message_text(params: Any) -> Optional[str]:
    """Concatenate the text parts of params.message (None when absent)."""
    if not isinstance(params, dict):
        return None
    message = params.get("message")
    if not isinstance(message, dict):
        return None
    parts = message.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [
        p["text"] for p in parts
        if isinstance(p, dict) and p.get("kind", "text") == "text" and isinstance(p.get("text"), str)
    ]
    text = "".join(texts)
    return text if text.strip() else None


def _agent_message(text: str, context_id: Optional[str], result: Optional[AgentRunResult] = None) -> dict:
    parts: list[dict[str, Any]] = [{"kind": "text", "text": text}]
    if result is not None and result.pending_approvals:
        parts.append({
            "kind": "data",
            "data": {
                "pendingApprovals": [
                    {"callId": a.call_id, "toolName": a.tool_name, "arguments": a.arguments}
                    for a in result.pending_approvals
                ],
            },
        })
    return {
        "kind": "message",
        "role": "agent",
        "messageId": uuid4().hex,
        "contextId": context_id,
        "parts": parts,
    }


def _final_status(context_id: Optional[str], task_id: str) -> dict:
    return {
        "kind": "status-update",
        "taskId": task_id,
        "contextId": context_id,
        "status": {
            "state": "completed",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "final": True,
    }


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


# ── Routes ──────────────────────────────────────────────────────────

@router.get("/{agent_id}/.well-known/agent-card.json")
async def agent_card(
    agent_id: str,
    request: Request,
    factory: ServiceFactory = Depends(get_factory),
):
    _, card = factory.create_agent_factory().get(agent_id)
    payload = card.to_dict()
    if not payload["url"]:
        payload["url"] = f"{str(request.base_url).rstrip('/')}/a2a/{agent_id}"
    return payload


@router.post("/{agent_id}")
async def rpc(
    agent_id: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    factory: ServiceFactory = Depends(get_factory),
):
    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _rpc_error(None, PARSE_ERROR, "Parse error")

    if not isinstance(payload, dict) or payload.get("jsonrpc") != "2.0" \
            or not isinstance(payload.get("method"), str):
        rpc_id = payload.get("id") if isinstance(payload, dict) else None
        return _rpc_error(rpc_id, INVALID_REQUEST, "Invalid Request")

    rpc_id = payload.get("id")
    method = payload["method"]
    if method not in _METHODS:
        return _rpc_error(rpc_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    text = _message_text(payload.get("params"))
    if text is None:
        return _rpc_error(rpc_id, INVALID_PARAMS, "params.message must contain a text part")

    agent, _ = factory.create_agent_factory().get(agent_id)
    logger.info("A2A %s %s ctx=%s | %s", method, agent_id, ctx.context_id, text[:200])

    if method == "message/send":
        try:
            result = await agent.run(text, ctx=ctx)
        except DomainError as exc:
            logger.error("A2A call to %s failed: %s", agent_id, exc)
            return _rpc_error(rpc_id, INTERNAL_ERROR, str(exc))
        return _rpc_result(rpc_id, _agent_message(result.text, ctx.context_id, result))

    async def event_stream():
        task_id = uuid4().hex
        try:
            if agent.supports_streaming:
                async for chunk in agent.stream(text, ctx=ctx):
                    yield _sse(_rpc_result(rpc_id, _agent_message(chunk, ctx.context_id)))
            else:
                result = await agent.run(text, ctx=ctx)
                yield _sse(_rpc_result(rpc_id, _agent_message(result.text, ctx.context_id, result)))
            yield _sse(_rpc_result(rpc_id, _final_status(ctx.context_id, task_id)))
        except DomainError as exc:
            logger.error("A2A stream from %s failed: %s", agent_id, exc)
            yield _sse({
                "jsonrpc": "2.0",
                "id": rpc_id,
                "error": {"code": INTERNAL_ERROR, "message": str(exc)},
            })

    return StreamingResponse(event_stream(), media_type="text/event-stream")
