"""Identifier linking for bundles of new boards and blocks.

Callers submit boards and blocks carrying ids of their own choosing; those ids
only express linkage (which board a block lives on, which block is its
parent). The resolver issues server ids for every entity and rewrites each
reference so the links survive.

Resolution happens in two phases: first every placeholder is mapped to a
fresh id, then one rewrite pass substitutes old -> new across all reference
fields. Because the mapping is complete before any rewrite, the order in which
entities were supplied never matters.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from app.logic.errors import UnresolvableReference, ValidationError
from app.models.blocks import Block
from app.models.boards_and_blocks import BoardsAndBlocks
from app.models.identifiers import (
    ID_TYPE_BOARD,
    Assigned,
    IdFactory,
    Placeholder,
    Ref,
    id_type_for_block,
    new_id,
)

logger = logging.getLogger(__name__)

# Block payload keys that hold ids of other blocks
CONTENT_ORDER_FIELD = "contentOrder"
CARD_ORDER_FIELD = "cardOrder"
DEFAULT_TEMPLATE_FIELD = "defaultTemplateId"


def classify_reference(value: str, placeholders: Mapping[str, str]) -> Optional[Ref]:
    """Tag ``value`` as a placeholder defined in this bundle or an assigned id.

    Returns ``None`` for the empty reference (a root block).
    """
    if not value:
        return None
    if value in placeholders:
        return Placeholder(value)
    return Assigned(value)


def _rewrite(ref: Optional[Ref], placeholders: Mapping[str, str]) -> str:
    if ref is None:
        return ""
    if isinstance(ref, Placeholder):
        return placeholders[ref.value]
    return ref.value


def _check_unique(ids: Iterable[str], kind: str) -> None:
    seen: set[str] = set()
    for value in ids:
        if not value:
            continue
        if value in seen:
            raise ValidationError(f"duplicate {kind} id {value}")
        seen.add(value)


def _rewrite_content_order(items: Any, placeholders: Mapping[str, str]) -> Any:
    # contentOrder entries are ids or rows of ids
    if isinstance(items, str):
        return placeholders.get(items, items)
    if isinstance(items, list):
        return [_rewrite_content_order(item, placeholders) for item in items]
    return items


def _rewrite_payload(fields: dict[str, Any], placeholders: Mapping[str, str]) -> dict[str, Any]:
    if not fields:
        return dict(fields)
    rewritten = dict(fields)
    if CONTENT_ORDER_FIELD in rewritten:
        rewritten[CONTENT_ORDER_FIELD] = _rewrite_content_order(rewritten[CONTENT_ORDER_FIELD], placeholders)
    if isinstance(rewritten.get(CARD_ORDER_FIELD), list):
        rewritten[CARD_ORDER_FIELD] = [
            placeholders.get(v, v) if isinstance(v, str) else v for v in rewritten[CARD_ORDER_FIELD]
        ]
    template_id = rewritten.get(DEFAULT_TEMPLATE_FIELD)
    if isinstance(template_id, str) and template_id:
        rewritten[DEFAULT_TEMPLATE_FIELD] = placeholders.get(template_id, template_id)
    return rewritten


def resolve_boards_and_blocks(bundle: BoardsAndBlocks, new_id: IdFactory = new_id) -> BoardsAndBlocks:
    """Return a copy of ``bundle`` where every entity carries a server id.

    Every block must live on one of the bundle's boards and its parent, when
    set, must be another block of the bundle or its board; anything else
    raises ``UnresolvableReference``. The input bundle is left untouched.
    """
    if not bundle.boards:
        raise ValidationError("at least one board is required")
    if not bundle.blocks:
        raise ValidationError("at least one block is required")
    _check_unique((b.id for b in bundle.boards), "board")
    _check_unique((b.id for b in bundle.blocks), "block")

    # Blocks reach boards by id, so at most one board may go without one
    if sum(1 for b in bundle.boards if not b.id) > 1:
        raise ValidationError("only one board may omit its id")

    board_ids: dict[str, str] = {}
    for board in bundle.boards:
        board_ids[board.id] = new_id(ID_TYPE_BOARD)

    block_ids: dict[str, str] = {}
    new_block_ids: list[str] = []
    for block in bundle.blocks:
        issued = new_id(id_type_for_block(block.type))
        new_block_ids.append(issued)
        if block.id:
            block_ids[block.id] = issued

    # Parents may name a block of the bundle or the board itself
    parent_targets = {**board_ids, **block_ids}

    boards = [
        board.model_copy(update={"id": board_ids[board.id]}, deep=True)
        for board in bundle.boards
    ]

    blocks: list[Block] = []
    for block, issued in zip(bundle.blocks, new_block_ids):
        board_ref = classify_reference(block.board_id, board_ids)
        if not isinstance(board_ref, Placeholder):
            if block.board_id == "" and "" in board_ids:
                board_ref = Placeholder("")
            else:
                raise UnresolvableReference(block_id=block.id, reference=block.board_id)

        parent_ref = classify_reference(block.parent_id, parent_targets)
        if isinstance(parent_ref, Assigned):
            # New boards cannot hold pre-existing blocks
            raise UnresolvableReference(block_id=block.id, reference=block.parent_id)

        blocks.append(
            block.model_copy(
                update={
                    "id": issued,
                    "board_id": board_ids[board_ref.value],
                    "parent_id": _rewrite(parent_ref, parent_targets),
                    "fields": _rewrite_payload(block.fields, block_ids),
                },
                deep=True,
            )
        )

    logger.debug("resolved bundle boards=%d blocks=%d", len(boards), len(blocks))
    return BoardsAndBlocks(boards=boards, blocks=blocks)


def resolve_blocks(blocks: list[Block], new_id: IdFactory = new_id) -> list[Block]:
    """Issue server ids for blocks added to an existing board.

    Parents and payload references that name another block of ``blocks`` are
    rewritten; any other value is taken to be an id the server issued earlier
    and passes through unchanged.
    """
    _check_unique((b.id for b in blocks), "block")

    issued_ids = [new_id(id_type_for_block(block.type)) for block in blocks]
    placeholders = {block.id: issued for block, issued in zip(blocks, issued_ids) if block.id}

    resolved: list[Block] = []
    for block, issued in zip(blocks, issued_ids):
        parent_ref = classify_reference(block.parent_id, placeholders)
        resolved.append(
            block.model_copy(
                update={
                    "id": issued,
                    "parent_id": _rewrite(parent_ref, placeholders),
                    "fields": _rewrite_payload(block.fields, placeholders),
                },
                deep=True,
            )
        )
    return resolved


__all__ = [
    "classify_reference",
    "resolve_boards_and_blocks",
    "resolve_blocks",
]
