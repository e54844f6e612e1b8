"""Database bootstrap utilities for the boards service.

Exposes engine construction and schema creation. The DB layer does not leak
ORM models into route handlers.
"""

from app.db.base import create_schema, dispose_engines, get_engine, new_engine

__all__ = [
    "get_engine",
    "new_engine",
    "create_schema",
    "dispose_engines",
]
