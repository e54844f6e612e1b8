"""Request ID middleware.

Reuses an inbound X-Request-Id or generates one, exposes it to handlers as
``request.state.request_id`` (audit records carry it) and echoes it on the
response.
"""

from __future__ import annotations

import uuid


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        header_bytes = self.header_name.lower().encode("latin-1")
        inbound = ""
        for k, v in scope.get("headers") or []:
            if k.lower() == header_bytes:
                inbound = v.decode("latin-1").strip()
                break
        request_id = inbound or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                if header_bytes not in [k.lower() for k, _ in headers]:
                    headers.append((self.header_name.encode("latin-1"), request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_wrapper)


__all__ = ["RequestIdMiddleware"]
