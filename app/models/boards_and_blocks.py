"""Request/response envelopes for composite boards-and-blocks operations.

These bundles are never persisted as such; they only group the boards and
blocks that one request creates, patches or deletes together.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.logic.errors import ValidationError
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch


class BoardsAndBlocks(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    boards: list[Board] = Field(default_factory=list)
    blocks: list[Block] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {
            "boards": [b.to_wire() for b in self.boards],
            "blocks": [b.to_wire() for b in self.blocks],
        }


class PatchBoardsAndBlocks(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    board_ids: list[str] = Field(default_factory=list, alias="boardIDs")
    board_patches: list[BoardPatch] = Field(default_factory=list, alias="boardPatches")
    block_ids: list[str] = Field(default_factory=list, alias="blockIDs")
    block_patches: list[BlockPatch] = Field(default_factory=list, alias="blockPatches")

    def validate_structure(self) -> None:
        if not self.board_ids:
            raise ValidationError("at least one board is required")
        if len(self.board_ids) != len(self.board_patches):
            raise ValidationError("board ids and board patches must have the same length")
        if len(self.block_ids) != len(self.block_patches):
            raise ValidationError("block ids and block patches must have the same length")

    def board_pairs(self) -> list[tuple[str, BoardPatch]]:
        return list(zip(self.board_ids, self.board_patches))

    def block_pairs(self) -> list[tuple[str, BlockPatch]]:
        return list(zip(self.block_ids, self.block_patches))


class DeleteBoardsAndBlocks(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    boards: list[str] = Field(default_factory=list)
    blocks: list[str] = Field(default_factory=list)

    def validate_structure(self) -> None:
        if not self.boards:
            raise ValidationError("at least one board is required")
        if any(not str(board_id).strip() for board_id in self.boards):
            raise ValidationError("board ids must be non-empty")
        if any(not str(block_id).strip() for block_id in self.blocks):
            raise ValidationError("block ids must be non-empty")


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str = ""
    error_code: int = Field(default=0, alias="errorCode")


__all__ = [
    "BoardsAndBlocks",
    "PatchBoardsAndBlocks",
    "DeleteBoardsAndBlocks",
    "ErrorResponse",
]
