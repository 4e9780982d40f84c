"""Map domain exceptions to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from agent_labs.domain.exceptions import (
    AgentNotFoundError,
    ApprovalError,
    ContextIdError,
    DomainError,
    ThreadNotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: tuple[tuple[type[DomainError], int], ...] = (
    (AgentNotFoundError, status.HTTP_404_NOT_FOUND),
    (ThreadNotFoundError, status.HTTP_404_NOT_FOUND),
    (ContextIdError, status.HTTP_401_UNAUTHORIZED),
    (ApprovalError, status.HTTP_400_BAD_REQUEST),
)


def status_code_for(exc: DomainError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error("Request %s %s failed", request.method, request.url.path, exc_info=exc)
    else:
        logger.info("Request %s %s rejected (%d): %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Blank or malformed input raised below the routers (e.g. a blank thread id)."""
    logger.info("Request %s %s rejected (400): %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})
