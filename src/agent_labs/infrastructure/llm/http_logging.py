"""
agent_labs.infrastructure.llm.http_logging - httpx clients that log LLM traffic.

The OpenAI-compatible chat models accept custom ``http_client`` /
``http_async_client`` instances; these add request/response event hooks
so every call to the model endpoint shows up in the application log.
"""

from __future__ import annotations

import logging
import time

import httpx

logger = logging.getLogger(__name__)

_START_KEY = "agent_labs_started_at"


def _on_request(request: httpx.Request) -> None:
    request.extensions[_START_KEY] = time.perf_counter()
    logger.info("→ %s %s (%d bytes)", request.method, request.url, len(request.content or b""))


def _on_response(response: httpx.Response) -> None:
    started = response.request.extensions.get(_START_KEY)
    elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
    logger.info(
        "← %s %s %d (%.0f ms)",
        response.request.method, response.request.url,
        response.status_code, elapsed_ms,
    )


async def _on_request_async(request: httpx.Request) -> None:
    _on_request(request)


async def _on_response_async(response: httpx.Response) -> None:
    _on_response(response)


def build_logging_clients(timeout: float = 60.0) -> tuple[httpx.Client, httpx.AsyncClient]:
    """Return a (sync, async) pair of httpx clients with logging hooks."""
    sync_client = httpx.Client(
        timeout=timeout,
        event_hooks={"request": [_on_request], "response": [_on_response]},
    )
    async_client = httpx.AsyncClient(
        timeout=timeout,
        event_hooks={"request": [_on_request_async], "response": [_on_response_async]},
    )
    return sync_client, async_client
