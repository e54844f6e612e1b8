"""Block endpoints for a single board, including subtree, export and import."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from app.http.dependencies import get_actor_id, get_boards_service, get_request_id
from app.logic.entities import BoardsService, FilteredBlocks
from app.models.blocks import Block, BlockPatch

logger = logging.getLogger(__name__)

router = APIRouter()

ORPHAN_COUNT_HEADER = "X-Orphan-Count"
DEFAULT_SUBTREE_LEVELS = 2


def _filtered_response(result: FilteredBlocks) -> JSONResponse:
    return JSONResponse(
        [b.to_wire() for b in result.blocks],
        status_code=200,
        headers={ORPHAN_COUNT_HEADER: str(result.orphan_count)},
    )


def parse_levels(raw: str) -> int:
    """Parse the subtree ``l`` parameter; anything unparseable means 2."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_SUBTREE_LEVELS


@router.get(
    "/boards/{board_id}/blocks/export",
    summary="Export a board's blocks without orphans",
    operation_id="exportBlocks",
    tags=["Blocks"],
)
def export_blocks(
    board_id: str,
    root_id: str = Query(default=""),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    result = service.export_blocks(board_id, actor_id, root_id=root_id, request_id=request_id)
    return _filtered_response(result)


@router.post(
    "/boards/{board_id}/blocks/import",
    summary="Import previously exported blocks into a board",
    operation_id="importBlocks",
    tags=["Blocks"],
)
def import_blocks(
    board_id: str,
    blocks: list[Block] = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    imported = service.import_blocks(board_id, blocks, actor_id, request_id=request_id)
    return JSONResponse([b.to_wire() for b in imported], status_code=200)


@router.get(
    "/boards/{board_id}/blocks",
    summary="List a board's blocks",
    operation_id="getBlocks",
    tags=["Blocks"],
)
def get_blocks(
    board_id: str,
    parent_id: str = Query(default=""),
    block_type: str = Query(default="", alias="type"),
    all_blocks: bool = Query(default=False, alias="all"),
    block_id: str = Query(default=""),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    blocks = service.get_blocks(
        board_id,
        actor_id,
        parent_id=parent_id,
        block_type=block_type,
        all_blocks=all_blocks,
        block_id=block_id,
        request_id=request_id,
    )
    return JSONResponse([b.to_wire() for b in blocks], status_code=200)


@router.post(
    "/boards/{board_id}/blocks",
    summary="Insert blocks into a board",
    operation_id="updateBlocks",
    tags=["Blocks"],
)
def insert_blocks(
    board_id: str,
    blocks: list[Block] = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    inserted = service.insert_blocks(board_id, blocks, actor_id, request_id=request_id)
    return JSONResponse([b.to_wire() for b in inserted], status_code=200)


@router.get(
    "/boards/{board_id}/blocks/{block_id}/subtree",
    summary="Get a block with its children (and grandchildren)",
    operation_id="getSubTree",
    tags=["Blocks"],
)
def get_subtree(
    board_id: str,
    block_id: str,
    levels: str = Query(default="", alias="l"),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    result = service.get_subtree(
        board_id, block_id, actor_id, levels=parse_levels(levels), request_id=request_id
    )
    return _filtered_response(result)


@router.patch(
    "/boards/{board_id}/blocks/{block_id}",
    summary="Patch a block",
    operation_id="patchBlock",
    tags=["Blocks"],
)
def patch_block(
    board_id: str,
    block_id: str,
    patch: BlockPatch = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    updated = service.patch_block(board_id, block_id, patch, actor_id, request_id=request_id)
    return JSONResponse(updated.to_wire(), status_code=200)


@router.delete(
    "/boards/{board_id}/blocks/{block_id}",
    summary="Delete a block",
    operation_id="deleteBlock",
    tags=["Blocks"],
)
def delete_block(
    board_id: str,
    block_id: str,
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    service.delete_block(board_id, block_id, actor_id, request_id=request_id)
    return JSONResponse({}, status_code=200)


__all__ = ["router", "parse_levels"]
