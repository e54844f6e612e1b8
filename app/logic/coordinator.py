"""Composite create/patch/delete of boards together with their blocks.

Each operation validates the whole request, consults the permission checker
and only then hands the change to the store in a single transaction, so a
request either applies completely or not at all. Every call produces one
audit record, opened before validation starts.
"""

from __future__ import annotations

import logging
from typing import Optional

from app.logic.audit import LEVEL_MODIFY, AuditSink, audit_operation
from app.logic.errors import PermissionDenied, ValidationError
from app.logic.id_resolver import resolve_boards_and_blocks
from app.logic.metadata import Clock, modifier_for, now_millis, stamp_modification_metadata
from app.logic.permissions import Permission, PermissionChecker
from app.logic.repository_boards import BoardBlockStore
from app.models.blocks import Block
from app.models.boards import Board
from app.models.boards_and_blocks import BoardsAndBlocks, DeleteBoardsAndBlocks, PatchBoardsAndBlocks
from app.models.identifiers import IdFactory, new_id

logger = logging.getLogger(__name__)


def validate_new_block(block: Block) -> None:
    """Reject blocks that cannot be stored: no type or unset timestamps."""
    if not block.type:
        raise ValidationError(f"missing type for block id {block.id}")
    if block.create_at < 1:
        raise ValidationError(f"invalid createAt for block id {block.id}")
    if block.update_at < 1:
        raise ValidationError(f"invalid UpdateAt for block id {block.id}")


class BoardsAndBlocksCoordinator:
    def __init__(
        self,
        store: BoardBlockStore,
        permissions: PermissionChecker,
        audit_sink: AuditSink,
        clock: Clock = now_millis,
        new_id: IdFactory = new_id,
    ) -> None:
        self.store = store
        self.permissions = permissions
        self.audit_sink = audit_sink
        self.clock = clock
        self.new_id = new_id

    def create(self, bundle: BoardsAndBlocks, actor_id: str, request_id: str = "") -> BoardsAndBlocks:
        """Create every board and block of ``bundle`` with freshly issued ids.

        Blocks link to boards and to each other through caller-chosen
        placeholders; the returned bundle carries the server ids instead.
        """
        with audit_operation(
            self.audit_sink, "createBoardsAndBlocks", actor_id, LEVEL_MODIFY, request_id
        ) as record:
            for block in bundle.blocks:
                validate_new_block(block)

            team_id = ""
            for idx, board in enumerate(bundle.boards):
                if idx == 0:
                    team_id = board.team_id
                elif board.team_id != team_id:
                    raise ValidationError("cannot create boards for multiple teams")
                if idx > 0 and not board.id:
                    raise ValidationError("boards need an ID to be referenced from the blocks")
                board.validate_entity()

            resolved = resolve_boards_and_blocks(bundle, new_id=self.new_id)

            has_public = any(b.is_open for b in resolved.boards)
            has_private = any(b.is_private for b in resolved.boards)
            if has_public and not self.permissions.has_permission_to_team(
                actor_id, team_id, Permission.CREATE_PUBLIC_CHANNEL
            ):
                raise PermissionDenied("permission denied to create public boards")
            if has_private and not self.permissions.has_permission_to_team(
                actor_id, team_id, Permission.CREATE_PRIVATE_CHANNEL
            ):
                raise PermissionDenied("permission denied to create private boards")

            stamp = stamp_modification_metadata(
                [*resolved.boards, *resolved.blocks], actor_id, clock=self.clock, record=record
            )
            for board in resolved.boards:
                board.created_by = actor_id
                board.create_at = stamp
            for block in resolved.blocks:
                if not block.created_by:
                    block.created_by = actor_id

            record.add_meta("teamID", team_id)
            record.add_meta("boardsCount", len(resolved.boards))
            record.add_meta("blocksCount", len(resolved.blocks))

            created = self.store.create_boards_and_blocks(resolved)
            logger.debug(
                "CreateBoardsAndBlocks teamID=%s boards=%d blocks=%d",
                team_id, len(created.boards), len(created.blocks),
            )
            record.success()
            return created

    def patch(self, patch_set: PatchBoardsAndBlocks, actor_id: str, request_id: str = "") -> BoardsAndBlocks:
        """Apply board and block patches together; returns the updated entities."""
        with audit_operation(
            self.audit_sink, "patchBoardsAndBlocks", actor_id, LEVEL_MODIFY, request_id
        ) as record:
            patch_set.validate_structure()

            team_id = ""
            boards_by_id: dict[str, Board] = {}
            for board_id, patch in patch_set.board_pairs():
                patch.validate_patch()
                board = self.store.get_board(board_id)
                if board is None:
                    raise ValidationError(f"board {board_id} not found")
                if not self.permissions.has_permission_to_board(
                    actor_id, board_id, Permission.MANAGE_BOARD_PROPERTIES
                ):
                    raise PermissionDenied("permission denied to make board changes")
                if patch.changes_type and not self.permissions.has_permission_to_board(
                    actor_id, board_id, Permission.MANAGE_BOARD_TYPE
                ):
                    raise PermissionDenied("permission denied to make board type changes")

                if not team_id:
                    team_id = board.team_id
                elif board.team_id != team_id:
                    raise ValidationError("mismatched team ID")
                boards_by_id[board_id] = board

            for block_id, _ in patch_set.block_pairs():
                block = self.store.get_block(block_id)
                if block is None:
                    raise ValidationError(f"block {block_id} not found")
                if block.board_id not in boards_by_id:
                    raise ValidationError(f"missing BoardID {block.board_id} for block {block_id}")

            record.add_meta("teamID", team_id)
            record.add_meta("boardsCount", len(patch_set.board_ids))
            record.add_meta("blocksCount", len(patch_set.block_ids))
            record.add_target_ids([*patch_set.board_ids, *patch_set.block_ids])

            patched = self.store.patch_boards_and_blocks(
                patch_set, modifier_for(actor_id), self.clock()
            )
            logger.debug(
                "PatchBoardsAndBlocks teamID=%s boards=%d blocks=%d",
                team_id, len(patched.boards), len(patched.blocks),
            )
            record.success()
            return patched

    def delete(self, delete_set: DeleteBoardsAndBlocks, actor_id: str, request_id: str = "") -> None:
        """Delete the listed boards with all their blocks, plus the listed blocks."""
        with audit_operation(
            self.audit_sink, "deleteBoardsAndBlocks", actor_id, LEVEL_MODIFY, request_id
        ) as record:
            team_id = ""
            for board_id in delete_set.boards:
                board = self.store.get_board(board_id)
                if board is None:
                    raise ValidationError(f"board {board_id} not found")
                if not team_id:
                    team_id = board.team_id
                elif board.team_id != team_id:
                    raise ValidationError("all boards should be from the same team")
                if not self.permissions.has_permission_to_board(actor_id, board_id, Permission.DELETE_BOARD):
                    raise PermissionDenied(f"permission denied to delete board {board_id}")

            delete_set.validate_structure()

            listed_boards = set(delete_set.boards)
            for block_id in delete_set.blocks:
                block: Optional[Block] = self.store.get_block(block_id)
                if block is None:
                    raise ValidationError(f"block {block_id} not found")
                if block.board_id not in listed_boards:
                    raise ValidationError(f"block {block_id} does not belong to any of the boards")

            record.add_meta("teamID", team_id)
            record.add_meta("boardsCount", len(delete_set.boards))
            record.add_meta("blocksCount", len(delete_set.blocks))
            record.add_target_ids([*delete_set.boards, *delete_set.blocks])

            self.store.delete_boards_and_blocks(delete_set)
            logger.debug("DeleteBoardsAndBlocks teamID=%s boards=%d", team_id, len(delete_set.boards))
            record.success()


__all__ = ["BoardsAndBlocksCoordinator", "validate_new_block"]
