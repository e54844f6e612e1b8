from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.config import AppConfig, load_config
from app.db.base import create_schema, get_engine
from app.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from app.http.request_id import RequestIdMiddleware
from app.logging_setup import configure_logging
from app.logic.audit import AuditSink, BufferedAuditSink, LoggingAuditSink
from app.logic.coordinator import BoardsAndBlocksCoordinator
from app.logic.entities import BoardsService
from app.logic.errors import DomainError
from app.logic.permissions import LocalPermissionChecker, PermissionChecker
from app.logic.repository_boards import BoardBlockStore, SqlBoardBlockStore
from app.middleware.cors import apply_cors
from app.middleware.csrf import CsrfMiddleware
from app.routes import api_router
from app.routes.test_support import router as test_support_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _health_check(engine: Optional[Engine]) -> Callable[[], dict]:
    def check() -> dict:
        if engine is None:
            return {"status": "ok", "db": False}
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[BoardBlockStore] = None,
    permissions: Optional[PermissionChecker] = None,
    audit_sink: Optional[AuditSink] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Collaborators default to a SQL store on the configured database, the
    local permission checker and a logging audit sink (or an in-memory one
    when audit logging is disabled). Tests pass their own.
    """
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    config = config or load_config()

    engine: Optional[Engine] = None
    if store is None:
        engine = get_engine(config.database.dsn)
        create_schema(engine)
        store = SqlBoardBlockStore(engine)
    if permissions is None:
        permissions = LocalPermissionChecker(store)
    if audit_sink is None:
        audit_sink = LoggingAuditSink() if config.audit.enabled else BufferedAuditSink()

    app = FastAPI(title="Boards and Blocks API")
    app.state.config = config
    app.state.store = store
    app.state.permissions = permissions
    app.state.audit_sink = audit_sink
    app.state.coordinator = BoardsAndBlocksCoordinator(store, permissions, audit_sink)
    app.state.boards_service = BoardsService(store, permissions, audit_sink)

    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Innermost first: CSRF runs after request-id assignment, CORS wraps both
    app.add_middleware(CsrfMiddleware, path_prefix="/api/", enabled=config.auth.csrf_check)
    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=config.cors.origins)

    # Routers
    app.include_router(api_router, prefix=API_PREFIX)
    if not config.audit.enabled:
        app.include_router(test_support_router)

    # Health endpoint (out of prefix for simplicity in local runs)
    health_check = _health_check(engine)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info(
        "app_created csrf_check=%s audit=%s single_user=%s",
        config.auth.csrf_check, config.audit.enabled, bool(config.auth.single_user_token),
    )
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
