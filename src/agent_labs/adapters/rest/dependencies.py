"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- get_request_context(): RequestContext built from what
  AgentContextMiddleware stored on the request.
- context_signer_provider(): the signer the middleware enforces, or None.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from agent_labs.application.context import RequestContext
from agent_labs.application.services.context_ids import ContextIdSigner
from agent_labs.factory import ServiceFactory

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def context_signer_provider() -> Optional[ContextIdSigner]:
    """Signer used to enforce X-Context-Signature, when REQUIRE_SIGNED_CONTEXT is on."""
    if _factory is None or not _factory.config.require_signed_context:
        return None
    return _factory.create_context_signer()


def get_request_context(request: Request) -> RequestContext:
    state = request.state
    return RequestContext(
        context_id=getattr(state, "context_id", None),
        is_new_context=getattr(state, "is_new_context", True),
        request_type=getattr(state, "request_type", None) or "Unknown",
        username=getattr(state, "username", None),
    )
