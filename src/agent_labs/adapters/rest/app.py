"""
FastAPI application: REST, SSE and A2A adapter for the agent backend.

Usage:
    python run_api.py

Or directly:
    uvicorn agent_labs.adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_labs import __version__
from agent_labs.domain.exceptions import DomainError
from agent_labs.factory import ServiceFactory
from agent_labs.infrastructure.config import Settings
from agent_labs.infrastructure.logging_setup import configure_logging
from agent_labs.adapters.rest.dependencies import context_signer_provider, set_factory
from agent_labs.adapters.rest.errors import domain_error_handler, value_error_handler
from agent_labs.adapters.rest.middleware import AgentContextMiddleware
from agent_labs.adapters.rest.routers import a2a, agents, context, threads

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize ServiceFactory on startup."""
    config = Settings.from_env()
    configure_logging(config.log_level)
    factory = ServiceFactory(config)
    await factory.initialize()
    set_factory(factory)
    logger.info("Agent backend ready (%s)", __version__)
    yield
    set_factory(None)


app = FastAPI(
    title="Agent Labs",
    version=__version__,
    description="Multi-agent chat backend: REST/SSE for the front-end and A2A JSON-RPC.",
    lifespan=lifespan,
)

app.add_exception_handler(DomainError, domain_error_handler)
app.add_exception_handler(ValueError, value_error_handler)

# Context extraction must see the raw body before routing
app.add_middleware(AgentContextMiddleware, signer_provider=context_signer_provider)

# CORS: permissive for development; tighten allowed_origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(agents.router)
app.include_router(threads.router)
app.include_router(context.router)
app.include_router(a2a.router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "version": __version__}
