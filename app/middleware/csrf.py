"""CSRF gate for API routes.

Browsers cannot set ``X-Requested-With`` on cross-site form posts, so every
``/api/`` request must carry ``X-Requested-With: XMLHttpRequest``. Requests
without it are rejected with 400 before routing or body parsing.
"""

from __future__ import annotations

import logging

from app.models.boards_and_blocks import ErrorResponse

logger = logging.getLogger(__name__)

CSRF_HEADER = b"x-requested-with"
CSRF_VALUE = "XMLHttpRequest"
CSRF_FAILED_MESSAGE = "checkCSRFToken FAILED"


class CsrfMiddleware:
    def __init__(self, app, path_prefix: str = "/api/", enabled: bool = True) -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.path_prefix = path_prefix
        self.enabled = enabled

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if not self.enabled or scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = str(scope.get("path") or "")
        method = str(scope.get("method") or "").upper()
        if method == "OPTIONS" or not path.startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        value = ""
        for k, v in scope.get("headers") or []:
            if k.lower() == CSRF_HEADER:
                value = v.decode("latin-1")
                break
        if value == CSRF_VALUE:
            await self.app(scope, receive, send)
            return

        logger.error("API ERROR code=400 api=%s error=%s", path, CSRF_FAILED_MESSAGE)
        payload = ErrorResponse(error=CSRF_FAILED_MESSAGE, error_code=400)
        body = payload.model_dump_json(by_alias=True).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": 400,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode("latin-1")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body, "more_body": False})


__all__ = ["CsrfMiddleware", "CSRF_FAILED_MESSAGE"]
