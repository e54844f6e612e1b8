"""Composite boards-and-blocks endpoints.

Create, patch and delete several boards together with their blocks in one
atomic request.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.http.dependencies import get_actor_id, get_coordinator, get_request_id
from app.logic.coordinator import BoardsAndBlocksCoordinator
from app.models.boards_and_blocks import BoardsAndBlocks, DeleteBoardsAndBlocks, PatchBoardsAndBlocks

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/boards-and-blocks",
    summary="Create boards and blocks together",
    operation_id="createBoardsAndBlocks",
    tags=["BoardsAndBlocks"],
)
def create_boards_and_blocks(
    bundle: BoardsAndBlocks = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    coordinator: BoardsAndBlocksCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    created = coordinator.create(bundle, actor_id, request_id=request_id)
    return JSONResponse(created.to_wire(), status_code=200)


@router.patch(
    "/boards-and-blocks",
    summary="Patch boards and blocks together",
    operation_id="patchBoardsAndBlocks",
    tags=["BoardsAndBlocks"],
)
def patch_boards_and_blocks(
    patch_set: PatchBoardsAndBlocks = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    coordinator: BoardsAndBlocksCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    patched = coordinator.patch(patch_set, actor_id, request_id=request_id)
    return JSONResponse(patched.to_wire(), status_code=200)


@router.delete(
    "/boards-and-blocks",
    summary="Delete boards and blocks together",
    operation_id="deleteBoardsAndBlocks",
    tags=["BoardsAndBlocks"],
)
def delete_boards_and_blocks(
    delete_set: DeleteBoardsAndBlocks = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    coordinator: BoardsAndBlocksCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    coordinator.delete(delete_set, actor_id, request_id=request_id)
    return JSONResponse({}, status_code=200)


__all__ = ["router"]
