"""Shared fixtures: deterministic clock and ids, an in-memory store and
permission checkers for unit tests of the logic layer.
"""

from __future__ import annotations

import itertools
import typing as t

import pytest

from app.logic.audit import BufferedAuditSink
from app.logic.errors import PersistenceError
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch
from app.models.boards_and_blocks import BoardsAndBlocks, DeleteBoardsAndBlocks, PatchBoardsAndBlocks

FIXED_NOW = 1_700_000_000_000


class FakeStore:
    """Dict-backed store; ``fail_next_write`` makes the next write raise before touching anything."""

    def __init__(self) -> None:
        self.boards: dict[str, Board] = {}
        self.blocks: dict[str, Block] = {}
        self.fail_next_write = False

    def _check_failure(self) -> None:
        if self.fail_next_write:
            self.fail_next_write = False
            raise PersistenceError("injected failure")

    def get_board(self, board_id: str) -> t.Optional[Board]:
        return self.boards.get(board_id)

    def get_boards_for_team(self, team_id: str) -> list[Board]:
        return [b for b in self.boards.values() if b.team_id == team_id and not b.is_template]

    def get_block(self, block_id: str) -> t.Optional[Block]:
        return self.blocks.get(block_id)

    def get_blocks(self, board_id, parent_id=None, block_type=None) -> list[Block]:
        return [
            b for b in self.blocks.values()
            if b.board_id == board_id
            and (parent_id is None or b.parent_id == parent_id)
            and (block_type is None or b.type == block_type)
        ]

    def get_subtree(self, board_id: str, block_id: str, levels: int) -> list[Block]:
        on_board = [b for b in self.blocks.values() if b.board_id == board_id]
        result = [b for b in on_board if b.id == block_id or b.parent_id == block_id]
        if levels >= 3:
            child_ids = {b.id for b in result if b.id != block_id}
            result.extend(b for b in on_board if b.parent_id in child_ids)
        return result

    def insert_board(self, board: Board) -> Board:
        self._check_failure()
        self.boards[board.id] = board
        return board

    def patch_board(self, board_id, patch: BoardPatch, modified_by, update_at) -> Board:
        self._check_failure()
        updated = patch.apply(self.boards[board_id])
        updated.modified_by = modified_by
        updated.update_at = update_at
        self.boards[board_id] = updated
        return updated

    def delete_board(self, board_id: str) -> None:
        self._check_failure()
        self.boards.pop(board_id, None)
        for block_id in [b.id for b in self.blocks.values() if b.board_id == board_id]:
            del self.blocks[block_id]

    def insert_blocks(self, blocks: list[Block]) -> list[Block]:
        self._check_failure()
        for block in blocks:
            self.blocks[block.id] = block
        return blocks

    def patch_block(self, block_id, patch: BlockPatch, modified_by, update_at) -> Block:
        self._check_failure()
        updated = patch.apply(self.blocks[block_id])
        updated.modified_by = modified_by
        updated.update_at = update_at
        self.blocks[block_id] = updated
        return updated

    def delete_block(self, block_id: str) -> None:
        self._check_failure()
        self.blocks.pop(block_id, None)

    def create_boards_and_blocks(self, bundle: BoardsAndBlocks) -> BoardsAndBlocks:
        self._check_failure()
        for board in bundle.boards:
            self.boards[board.id] = board
        for block in bundle.blocks:
            self.blocks[block.id] = block
        return bundle

    def patch_boards_and_blocks(self, patch_set: PatchBoardsAndBlocks, modified_by, update_at) -> BoardsAndBlocks:
        self._check_failure()
        boards = [self.patch_board(i, p, modified_by, update_at) for i, p in patch_set.board_pairs()]
        blocks = [self.patch_block(i, p, modified_by, update_at) for i, p in patch_set.block_pairs()]
        return BoardsAndBlocks(boards=boards, blocks=blocks)

    def delete_boards_and_blocks(self, delete_set: DeleteBoardsAndBlocks) -> None:
        self._check_failure()
        for block_id in delete_set.blocks:
            self.blocks.pop(block_id, None)
        for board_id in delete_set.boards:
            self.delete_board(board_id)


class StaticPermissions:
    """Grants every permission except the ones listed in ``denied``."""

    def __init__(self, denied: t.Iterable[str] = ()) -> None:
        self.denied = {str(getattr(p, "value", p)) for p in denied}
        self.calls: list[tuple[str, str, str, str]] = []

    def has_permission_to_team(self, user_id, team_id, permission) -> bool:
        self.calls.append(("team", user_id, team_id, permission.value))
        return permission.value not in self.denied

    def has_permission_to_board(self, user_id, board_id, permission) -> bool:
        self.calls.append(("board", user_id, board_id, permission.value))
        return permission.value not in self.denied


@pytest.fixture
def fixed_clock() -> t.Callable[[], int]:
    return lambda: FIXED_NOW


@pytest.fixture
def sequential_ids() -> t.Callable[[str], str]:
    counter = itertools.count(1)

    def _new_id(id_type: str = "7") -> str:
        return f"{id_type}{next(counter):022d}"

    return _new_id


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def allow_all() -> StaticPermissions:
    return StaticPermissions()


@pytest.fixture
def audit_sink() -> BufferedAuditSink:
    return BufferedAuditSink()


def make_board(board_id: str = "board-1", team_id: str = "team-1", **kwargs: t.Any) -> Board:
    return Board(id=board_id, team_id=team_id, **kwargs)


def make_block(
    block_id: str,
    board_id: str = "board-1",
    parent_id: str = "",
    block_type: str = "card",
    **kwargs: t.Any,
) -> Block:
    kwargs.setdefault("create_at", 1)
    kwargs.setdefault("update_at", 1)
    return Block(id=block_id, board_id=board_id, parent_id=parent_id, type=block_type, **kwargs)


@pytest.fixture
def board_factory() -> t.Callable[..., Board]:
    return make_board


@pytest.fixture
def block_factory() -> t.Callable[..., Block]:
    return make_block


@pytest.fixture
def permissions_factory() -> t.Callable[..., StaticPermissions]:
    return StaticPermissions
