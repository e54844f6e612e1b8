"""Single board and block operations behind the per-entity routes.

These share the stamping, id issuing, orphan filtering and audit rules of the
composite coordinator but touch one board (and its blocks) per call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.logic.audit import LEVEL_MODIFY, LEVEL_READ, AuditSink, audit_operation
from app.logic.coordinator import validate_new_block
from app.logic.errors import NotFound, PermissionDenied, ValidationError
from app.logic.id_resolver import resolve_blocks
from app.logic.metadata import Clock, modifier_for, now_millis, stamp_modification_metadata
from app.logic.permissions import Permission, PermissionChecker
from app.logic.repository_boards import BoardBlockStore
from app.logic.tree_filter import partition_orphan_blocks
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch
from app.models.identifiers import ID_TYPE_BOARD, IdFactory, new_id

logger = logging.getLogger(__name__)

SUBTREE_LEVELS = (2, 3)


@dataclass
class FilteredBlocks:
    """Blocks left after orphan filtering and how many were dropped."""

    blocks: list[Block]
    orphan_count: int = 0


class BoardsService:
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

    # -- helpers

    def _require_board(self, board_id: str) -> Board:
        board = self.store.get_board(board_id)
        if board is None:
            raise NotFound(f"board {board_id} not found")
        return board

    def _require_block_on_board(self, board_id: str, block_id: str) -> Block:
        block = self.store.get_block(block_id)
        if block is None or block.board_id != board_id:
            raise NotFound(f"block {block_id} not found")
        return block

    def _require_board_permission(self, actor_id: str, board_id: str, permission: Permission) -> None:
        if not self.permissions.has_permission_to_board(actor_id, board_id, permission):
            raise PermissionDenied(f"permission denied to {permission.value} on board {board_id}")

    def _require_team_permission(self, actor_id: str, team_id: str, permission: Permission) -> None:
        if not self.permissions.has_permission_to_team(actor_id, team_id, permission):
            raise PermissionDenied(f"permission denied to {permission.value} on team {team_id}")

    def _filtered(
        self, blocks: list[Block], root_ids: Optional[list[str]] = None, root_parent_ids: tuple[str, ...] = ()
    ) -> FilteredBlocks:
        kept, dropped = partition_orphan_blocks(blocks, root_ids, root_parent_ids)
        return FilteredBlocks(blocks=kept, orphan_count=len(dropped))

    # -- boards

    def get_boards_for_team(self, team_id: str, actor_id: str) -> list[Board]:
        self._require_team_permission(actor_id, team_id, Permission.VIEW_TEAM)
        boards = [
            b for b in self.store.get_boards_for_team(team_id)
            if b.is_open or self.permissions.has_permission_to_board(actor_id, b.id, Permission.VIEW_BOARD)
        ]
        logger.debug("GetBoards teamID=%s boardsCount=%d", team_id, len(boards))
        return boards

    def create_board(self, board: Board, actor_id: str, request_id: str = "") -> Board:
        with audit_operation(self.audit_sink, "createBoard", actor_id, LEVEL_MODIFY, request_id) as record:
            board.validate_entity()
            permission = Permission.CREATE_PUBLIC_CHANNEL if board.is_open else Permission.CREATE_PRIVATE_CHANNEL
            self._require_team_permission(actor_id, board.team_id, permission)

            new_board = board.model_copy(update={"id": self.new_id(ID_TYPE_BOARD)}, deep=True)
            stamp = stamp_modification_metadata([new_board], actor_id, clock=self.clock, record=record)
            new_board.created_by = actor_id
            new_board.create_at = stamp

            created = self.store.insert_board(new_board)
            record.add_meta("teamID", created.team_id)
            logger.debug("CreateBoard teamID=%s boardID=%s", created.team_id, created.id)
            record.success()
            return created

    def get_board(self, board_id: str, actor_id: str, request_id: str = "") -> Board:
        with audit_operation(self.audit_sink, "getBoard", actor_id, LEVEL_READ, request_id) as record:
            record.add_meta("boardID", board_id)
            board = self._require_board(board_id)
            if board.is_private:
                self._require_board_permission(actor_id, board_id, Permission.VIEW_BOARD)
            else:
                self._require_team_permission(actor_id, board.team_id, Permission.VIEW_TEAM)
            record.success()
            return board

    def patch_board(self, board_id: str, patch: BoardPatch, actor_id: str, request_id: str = "") -> Board:
        with audit_operation(self.audit_sink, "patchBoard", actor_id, LEVEL_MODIFY, request_id) as record:
            record.add_target_ids([board_id])
            self._require_board(board_id)
            patch.validate_patch()
            self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_PROPERTIES)
            if patch.changes_type:
                self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_TYPE)

            updated = self.store.patch_board(board_id, patch, modifier_for(actor_id), self.clock())
            logger.debug("PatchBoard boardID=%s", board_id)
            record.success()
            return updated

    def delete_board(self, board_id: str, actor_id: str, request_id: str = "") -> None:
        with audit_operation(self.audit_sink, "deleteBoard", actor_id, LEVEL_MODIFY, request_id) as record:
            record.add_target_ids([board_id])
            board = self._require_board(board_id)
            self._require_board_permission(actor_id, board_id, Permission.DELETE_BOARD)
            self.store.delete_board(board_id)
            record.add_meta("teamID", board.team_id)
            logger.debug("DeleteBoard boardID=%s", board_id)
            record.success()

    # -- blocks

    def get_blocks(
        self,
        board_id: str,
        actor_id: str,
        parent_id: str = "",
        block_type: str = "",
        all_blocks: bool = False,
        block_id: str = "",
        request_id: str = "",
    ) -> list[Block]:
        """List a board's blocks.

        ``block_id`` returns just that block; ``all_blocks`` ignores the
        parent and type filters. Empty filters mean "any".
        """
        with audit_operation(self.audit_sink, "getBlocks", actor_id, LEVEL_READ, request_id) as record:
            record.add_meta("boardID", board_id)
            self._require_board(board_id)
            self._require_board_permission(actor_id, board_id, Permission.VIEW_BOARD)

            if block_id:
                blocks = [self._require_block_on_board(board_id, block_id)]
            elif all_blocks:
                blocks = self.store.get_blocks(board_id)
            else:
                blocks = self.store.get_blocks(board_id, parent_id=parent_id or None, block_type=block_type or None)

            logger.debug(
                "GetBlocks boardID=%s parentID=%s type=%s blockID=%s blockCount=%d",
                board_id, parent_id, block_type, block_id, len(blocks),
            )
            record.add_meta("blockCount", len(blocks))
            record.success()
            return blocks

    def insert_blocks(self, board_id: str, blocks: list[Block], actor_id: str, request_id: str = "") -> list[Block]:
        with audit_operation(self.audit_sink, "postBlocks", actor_id, LEVEL_MODIFY, request_id) as record:
            self._require_board(board_id)
            self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_CARDS)
            for block in blocks:
                validate_new_block(block)
                if block.board_id != board_id:
                    raise ValidationError(f"invalid BoardID for block id {block.id}")

            resolved = resolve_blocks(blocks, new_id=self.new_id)
            stamp_modification_metadata(resolved, actor_id, clock=self.clock, record=record)
            for block in resolved:
                block.created_by = actor_id

            inserted = self.store.insert_blocks(resolved)
            logger.debug("POST Blocks boardID=%s blockCount=%d", board_id, len(inserted))
            record.add_meta("blockCount", len(inserted))
            record.success()
            return inserted

    def patch_block(
        self, board_id: str, block_id: str, patch: BlockPatch, actor_id: str, request_id: str = ""
    ) -> Block:
        with audit_operation(self.audit_sink, "patchBlock", actor_id, LEVEL_MODIFY, request_id) as record:
            record.add_target_ids([block_id])
            self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_CARDS)
            self._require_block_on_board(board_id, block_id)
            updated = self.store.patch_block(block_id, patch, modifier_for(actor_id), self.clock())
            logger.debug("PATCH Block boardID=%s blockID=%s", board_id, block_id)
            record.success()
            return updated

    def delete_block(self, board_id: str, block_id: str, actor_id: str, request_id: str = "") -> None:
        with audit_operation(self.audit_sink, "deleteBlock", actor_id, LEVEL_MODIFY, request_id) as record:
            record.add_target_ids([block_id])
            self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_CARDS)
            self._require_block_on_board(board_id, block_id)
            self.store.delete_block(block_id)
            logger.debug("DELETE Block boardID=%s blockID=%s", board_id, block_id)
            record.success()

    def get_subtree(
        self, board_id: str, block_id: str, actor_id: str, levels: int = 2, request_id: str = ""
    ) -> FilteredBlocks:
        """Return ``block_id`` with up to ``levels - 1`` generations below it."""
        with audit_operation(self.audit_sink, "getSubTree", actor_id, LEVEL_READ, request_id) as record:
            record.add_meta("boardID", board_id)
            record.add_meta("blockID", block_id)
            if levels not in SUBTREE_LEVELS:
                raise ValidationError("invalid levels")
            self._require_board_permission(actor_id, board_id, Permission.VIEW_BOARD)

            blocks = self.store.get_subtree(board_id, block_id, levels)
            result = self._filtered(blocks, root_ids=[block_id])
            logger.debug(
                "GetSubTree levels=%d boardID=%s blockCount=%d orphanCount=%d",
                levels, board_id, len(result.blocks), result.orphan_count,
            )
            record.add_meta("blockCount", len(result.blocks))
            record.add_meta("orphanCount", result.orphan_count)
            record.success()
            return result

    def export_blocks(self, board_id: str, actor_id: str, root_id: str = "", request_id: str = "") -> FilteredBlocks:
        """Return the board's blocks (or those under ``root_id``) minus orphans."""
        with audit_operation(self.audit_sink, "exportBlocks", actor_id, LEVEL_READ, request_id) as record:
            record.add_meta("boardID", board_id)
            record.add_meta("rootID", root_id)
            self._require_board_permission(actor_id, board_id, Permission.VIEW_BOARD)

            blocks = self.store.get_blocks(board_id)
            logger.debug("EXPORT BoardID=%s blockCount=%d", board_id, len(blocks))
            result = self._filtered(
                blocks, root_ids=[root_id] if root_id else None, root_parent_ids=(board_id,)
            )
            logger.debug(
                "EXPORT filtered blocks boardID=%s blockCount=%d orphanCount=%d",
                board_id, len(result.blocks), result.orphan_count,
            )
            record.add_meta("blockCount", len(result.blocks))
            record.add_meta("orphanCount", result.orphan_count)
            record.success()
            return result

    def import_blocks(self, board_id: str, blocks: list[Block], actor_id: str, request_id: str = "") -> list[Block]:
        """Insert previously exported blocks onto ``board_id`` under new ids."""
        with audit_operation(self.audit_sink, "importBlocks", actor_id, LEVEL_MODIFY, request_id) as record:
            self._require_board(board_id)
            self._require_board_permission(actor_id, board_id, Permission.MANAGE_BOARD_CARDS)

            rehomed: list[Block] = []
            for block in blocks:
                if not block.type:
                    raise ValidationError(f"missing type for block id {block.id}")
                update = {"board_id": board_id}
                # Top-level blocks of the exported board hang off the new one
                if block.parent_id and block.parent_id == block.board_id:
                    update["parent_id"] = board_id
                rehomed.append(block.model_copy(update=update, deep=True))

            resolved = resolve_blocks(rehomed, new_id=self.new_id)
            stamp = stamp_modification_metadata(resolved, actor_id, clock=self.clock, record=record)
            for block in resolved:
                block.created_by = actor_id
                if block.create_at < 1:
                    block.create_at = stamp

            inserted = self.store.insert_blocks(resolved)
            logger.debug("IMPORT BoardID=%s blockCount=%d", board_id, len(inserted))
            record.add_meta("blockCount", len(inserted))
            record.success()
            return inserted


__all__ = ["BoardsService", "FilteredBlocks", "SUBTREE_LEVELS"]
