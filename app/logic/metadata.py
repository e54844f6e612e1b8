"""Modification metadata applied to every entity a mutation writes."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Union

from app.models.blocks import Block
from app.models.boards import Board

if TYPE_CHECKING:  # pragma: no cover
    from app.logic.audit import AuditRecord

# Actor id used when the server runs without user accounts
SINGLE_USER = "single-user"

Clock = Callable[[], int]


def now_millis() -> int:
    return int(time.time() * 1000)


def modifier_for(actor_id: str) -> str:
    """Return the value to store as ``modifiedBy`` for ``actor_id``."""
    return "" if actor_id == SINGLE_USER else actor_id


def stamp_modification_metadata(
    entities: Iterable[Union[Board, Block]],
    actor_id: str,
    clock: Clock = now_millis,
    record: Optional["AuditRecord"] = None,
) -> int:
    """Set ``modified_by`` and ``update_at`` on every entity in place.

    The clock is read once so the whole batch shares one timestamp, which is
    returned. When an audit record is passed the entity ids are added to it
    as ``targetIds``.
    """
    stamp = clock()
    modified_by = modifier_for(actor_id)
    ids: list[str] = []
    for entity in entities:
        entity.modified_by = modified_by
        entity.update_at = stamp
        ids.append(entity.id)
    if record is not None:
        record.add_target_ids(ids)
    return stamp


__all__ = ["SINGLE_USER", "Clock", "now_millis", "modifier_for", "stamp_modification_metadata"]
