"""Domain exception hierarchy for boards and blocks.

These exceptions are raised by the logic layer and never by FastAPI itself;
``app.http.error_mapping`` translates them into ``{"error", "errorCode"}``
responses. Keeping them framework-agnostic lets the coordinator run under
plain unit tests with fake collaborators.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for every error the logic layer raises on purpose."""

    default_message = "request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed or inconsistent input. Maps to 400."""

    default_message = "invalid request"


class UnresolvableReference(ValidationError):
    """A block in a create bundle points at an identifier the bundle does not define."""

    default_message = "unresolvable reference"

    def __init__(self, message: str | None = None, *, block_id: str = "", reference: str = "") -> None:
        if message is None:
            message = f"block {block_id!r} references unknown id {reference!r}"
        super().__init__(message)
        self.block_id = block_id
        self.reference = reference


class Unauthorized(DomainError):
    """No actor could be resolved for the request. Maps to 401."""

    default_message = "access denied"


class PermissionDenied(DomainError):
    """The actor lacks a capability. Maps to 403."""

    default_message = "access denied"


class NotFound(DomainError):
    """A board or block addressed by the URL does not exist. Maps to 404."""

    default_message = "not found"


class PersistenceError(DomainError):
    """The store failed; the transaction was rolled back. Maps to 500."""

    default_message = "storage failure"


__all__ = [
    "DomainError",
    "ValidationError",
    "UnresolvableReference",
    "Unauthorized",
    "PermissionDenied",
    "NotFound",
    "PersistenceError",
]
