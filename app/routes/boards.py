"""Board endpoints: team listing and single-board CRUD."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.http.dependencies import get_actor_id, get_boards_service, get_request_id
from app.logic.entities import BoardsService
from app.models.boards import Board, BoardPatch

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/teams/{team_id}/boards",
    summary="List the boards of a team",
    operation_id="getBoards",
    tags=["Boards"],
)
def get_boards(
    team_id: str,
    actor_id: str = Depends(get_actor_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    boards = service.get_boards_for_team(team_id, actor_id)
    return JSONResponse([b.to_wire() for b in boards], status_code=200)


@router.post(
    "/boards",
    summary="Create a board",
    operation_id="createBoard",
    tags=["Boards"],
)
def create_board(
    board: Board = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    created = service.create_board(board, actor_id, request_id=request_id)
    return JSONResponse(created.to_wire(), status_code=200)


@router.get(
    "/boards/{board_id}",
    summary="Get a board",
    operation_id="getBoard",
    tags=["Boards"],
)
def get_board(
    board_id: str,
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    board = service.get_board(board_id, actor_id, request_id=request_id)
    return JSONResponse(board.to_wire(), status_code=200)


@router.patch(
    "/boards/{board_id}",
    summary="Patch a board",
    operation_id="patchBoard",
    tags=["Boards"],
)
def patch_board(
    board_id: str,
    patch: BoardPatch = Body(...),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    updated = service.patch_board(board_id, patch, actor_id, request_id=request_id)
    return JSONResponse(updated.to_wire(), status_code=200)


@router.delete(
    "/boards/{board_id}",
    summary="Delete a board and all of its blocks",
    operation_id="deleteBoard",
    tags=["Boards"],
)
def delete_board(
    board_id: str,
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    service: BoardsService = Depends(get_boards_service),
) -> JSONResponse:
    service.delete_board(board_id, actor_id, request_id=request_id)
    return JSONResponse({}, status_code=200)


__all__ = ["router"]
