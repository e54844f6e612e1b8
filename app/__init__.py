"""FastAPI application package for the boards and blocks service.

This package exposes a small FastAPI application factory. It wires only
cross-cutting middleware (request-id, CSRF, CORS) and mounts the API routers.
Business logic lives in `app/logic/` and route handlers in `app/routes/`.
"""

from __future__ import annotations

from app.main import create_app

__all__ = ["create_app"]
