"""SQLAlchemy engine construction and schema bootstrap.

PostgreSQL is the production target; SQLite (file or in-memory) is used for
local development and tests. This module only manages connection lifecycle
and table creation. Queries live in ``app.logic.repository_boards``.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from app.models.tables import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or DEFAULT_DATABASE_URL
    )


# Module-level cache so repositories created for the same URL share one Engine
_ENGINES: dict[str, Engine] = {}


def get_engine(url: str | None = None) -> Engine:
    """Return the cached Engine for ``url``, creating it on first use.

    In-memory SQLite URLs get a StaticPool so every session and thread sees
    the same single connection (and therefore the same database).
    """
    resolved_url = url or _db_url()
    engine = _ENGINES.get(resolved_url)
    if engine is None:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        engine = create_engine(resolved_url, **kwargs)
        _ENGINES[resolved_url] = engine
    return engine


def new_engine(url: str) -> Engine:
    """Return an uncached Engine; used by tests that need an isolated database."""
    kwargs: dict = {"future": True}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })
    return create_engine(url, **kwargs)


def create_schema(engine: Engine) -> None:
    """Create the board and block tables when they do not exist yet."""
    try:
        Base.metadata.create_all(engine)
    except Exception:
        logger.error("schema creation failed url=%s", engine.url, exc_info=True)
        raise


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
