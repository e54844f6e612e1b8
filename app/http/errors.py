"""Global exception handlers.

Every error leaves the API as ``{"error": message, "errorCode": status}`` and
is logged once as ``API ERROR`` with the status and path.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.http.error_mapping import public_message, status_for
from app.logic.errors import DomainError
from app.models.boards_and_blocks import ErrorResponse

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    logger.error(
        "API ERROR code=%d api=%s method=%s error=%s",
        status_code, request.url.path, request.method, message,
    )
    return JSONResponse(
        ErrorResponse(error=message, error_code=status_code).model_dump(by_alias=True),
        status_code=status_code,
        headers=headers,
    )


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("domain_error_unhandled type=%s", type(exc).__name__, exc_info=exc)
    return error_response(request, status_code, public_message(exc))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    headers = exc.headers if isinstance(exc.headers, dict) else None
    return error_response(request, int(exc.status_code), str(exc.detail or ""), headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed JSON and schema mismatches are both plain bad requests here
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = str(first.get("msg", "invalid request"))
    if location:
        message = f"{location}: {message}"
    return error_response(request, 400, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error", exc_info=exc)
    return error_response(request, 500, "internal server error")


__all__ = [
    "error_response",
    "handle_domain_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
