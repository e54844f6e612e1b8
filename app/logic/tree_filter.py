"""Orphan filtering for block forests.

Blocks are stored flat; a block is only shown when its ancestor chain reaches
a root. The filter walks the forest breadth-first from the roots and keeps
whatever it reaches, so blocks whose parent was deleted (or never existed)
drop out of export and subtree views.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Optional

from app.models.blocks import Block

logger = logging.getLogger(__name__)


def partition_orphan_blocks(
    blocks: Iterable[Block],
    root_ids: Optional[Iterable[str]] = None,
    root_parent_ids: Iterable[str] = (),
) -> tuple[list[Block], list[Block]]:
    """Split ``blocks`` into ``(kept, dropped)``.

    ``kept`` is in breadth-first order from the roots, children in input
    order. Roots are the blocks with an empty parent, plus any whose parent is
    listed in ``root_parent_ids`` (cards parented to their board). When
    ``root_ids`` is given the walk starts from exactly those blocks instead.
    Repeated ids keep their first occurrence; later copies are dropped.
    """
    unique: list[Block] = []
    dropped: list[Block] = []
    seen_ids: set[str] = set()
    for block in blocks:
        if block.id in seen_ids:
            dropped.append(block)
            continue
        seen_ids.add(block.id)
        unique.append(block)

    children: dict[str, list[Block]] = {}
    for block in unique:
        children.setdefault(block.parent_id, []).append(block)

    if root_ids is None:
        root_parents = {""} | set(root_parent_ids)
        seeds = [b for b in unique if b.parent_id in root_parents]
    else:
        wanted = set(root_ids)
        seeds = [b for b in unique if b.id in wanted]

    kept: list[Block] = []
    visited: set[str] = set()
    queue = deque(seeds)
    while queue:
        block = queue.popleft()
        if block.id in visited:
            continue
        visited.add(block.id)
        kept.append(block)
        for child in children.get(block.id, ()):
            if child.id not in visited:
                queue.append(child)

    dropped.extend(b for b in unique if b.id not in visited)
    if dropped:
        logger.debug("orphan_filter kept=%d dropped=%d", len(kept), len(dropped))
    return kept, dropped


def filter_orphan_blocks(
    blocks: Iterable[Block],
    root_ids: Optional[Iterable[str]] = None,
    root_parent_ids: Iterable[str] = (),
) -> list[Block]:
    """Return only the blocks reachable from a root; see ``partition_orphan_blocks``."""
    kept, _ = partition_orphan_blocks(blocks, root_ids, root_parent_ids)
    return kept


__all__ = ["filter_orphan_blocks", "partition_orphan_blocks"]
