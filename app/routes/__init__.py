"""APIRouter registration for the boards service."""

from __future__ import annotations

from fastapi import APIRouter

from app.routes.blocks import router as blocks_router
from app.routes.boards import router as boards_router
from app.routes.boards_and_blocks import router as boards_and_blocks_router

api_router = APIRouter()
api_router.include_router(boards_and_blocks_router, tags=["BoardsAndBlocks"])
api_router.include_router(boards_router, tags=["Boards"])
api_router.include_router(blocks_router, tags=["Blocks"])

__all__ = ["api_router"]
