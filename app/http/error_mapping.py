"""Status codes for domain exceptions.

One table, consulted by the exception handlers in ``app.http.errors``. The
most specific class wins, so ``UnresolvableReference`` resolves through its
``ValidationError`` parent.
"""

from __future__ import annotations

from typing import Dict, Type

from app.logic.errors import (
    DomainError,
    NotFound,
    PermissionDenied,
    PersistenceError,
    Unauthorized,
    ValidationError,
)

_STATUS_MAP: Dict[Type[DomainError], int] = {
    ValidationError: 400,
    Unauthorized: 401,
    PermissionDenied: 403,
    NotFound: 404,
    PersistenceError: 500,
}

# Messages from these are not shown to callers
_OPAQUE = (PersistenceError,)


def status_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


def public_message(exc: Exception) -> str:
    if isinstance(exc, DomainError) and not isinstance(exc, _OPAQUE):
        return exc.message
    return "internal server error"


__all__ = ["status_for", "public_message"]
