"""
Context id extraction for every agent request (A2A and front-end).

For POST requests under /a2a or /api/agents the JSON body is buffered and
searched for a conversation key:

    A2A       {"params": {"contextId": "..."}}
    Frontend  {"contextId": "..."}

When neither is present a new id (uuid4 hex) is generated. The result is
stored in scope["state"] (request.state.context_id / is_new_context /
request_type / username) and the body is replayed to the application.

When a signer is provided, a client-supplied context id must come with a
valid X-Context-Signature header, otherwise the request is rejected with 401.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional
from uuid import uuid4

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from agent_labs.application.services.context_ids import ContextIdSigner
from agent_labs.domain.exceptions import ContextIdError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-context-signature"
_AGENT_PATH_PREFIXES = ("/a2a", "/api/agents")


def _is_agent_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in _AGENT_PATH_PREFIXES)


def extract_context_id(payload: Any) -> tuple[Optional[str], Optional[str]]:
    """Return (context_id, request_type) from a parsed request body."""
    if not isinstance(payload, dict):
        return None, None

    params = payload.get("params")
    if isinstance(params, dict) and isinstance(params.get("contextId"), str):
        return params["contextId"], "A2A"

    if isinstance(payload.get("contextId"), str):
        return payload["contextId"], "Frontend"

    return None, None


class AgentContextMiddleware:
    """Pure ASGI middleware; streaming responses pass through untouched."""

    def __init__(
        self,
        app: ASGIApp,
        signer_provider: Optional[Callable[[], Optional[ContextIdSigner]]] = None,
    ):
        self.app = app
        self._signer_provider = signer_provider

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] != "POST"
            or not _is_agent_path(scope["path"])
        ):
            await self.app(scope, receive, send)
            return

        body = await self._read_body(receive)
        path = scope["path"]

        if body:
            payload = None
            try:
                payload = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                logger.error("Failed to parse request body for %s: %s", path, exc)

            context_id, request_type = extract_context_id(payload)
            is_new_context = not context_id or not context_id.strip()
            if is_new_context:
                context_id = uuid4().hex
                request_type = request_type or "Unknown"
                logger.info("Generated new contextId: %s", context_id)
            else:
                logger.info("Extracted contextId from %s: %s", request_type, context_id)
                try:
                    self._verify(context_id, self._header(scope, SIGNATURE_HEADER))
                except ContextIdError as exc:
                    response = JSONResponse(status_code=401, content={"detail": str(exc)})
                    await response(scope, receive, send)
                    return

            state = scope.setdefault("state", {})
            state["context_id"] = context_id
            state["is_new_context"] = is_new_context
            state["request_type"] = request_type
            state["username"] = (
                None if is_new_context else ContextIdSigner.extract_username(context_id)
            )
            logger.debug(
                "Path: %s, Type: %s, ContextId: %s, IsNew: %s",
                path, request_type, context_id, is_new_context,
            )
        else:
            logger.warning("Empty request body for %s", path)

        await self.app(scope, self._replay(body, receive), send)

    def _verify(self, context_id: str, signature: Optional[str]) -> None:
        signer = self._signer_provider() if self._signer_provider else None
        if signer is None:
            return
        if not signature:
            raise ContextIdError("Missing X-Context-Signature header.")
        if not signer.validate_signature(context_id, signature):
            raise ContextIdError("Invalid context id signature.")

    @staticmethod
    def _header(scope: Scope, name: str) -> Optional[str]:
        target = name.encode("latin-1")
        for key, value in scope.get("headers", []):
            if key.lower() == target:
                return value.decode("latin-1")
        return None

    @staticmethod
    async def _read_body(receive: Receive) -> bytes:
        chunks: list[bytes] = []
        while True:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    @staticmethod
    def _replay(body: bytes, receive: Receive) -> Receive:
        sent = False

        async def replay() -> Message:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        return replay
