"""Functional tests for the SQL store against in-memory SQLite."""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.logic.errors import PersistenceError
from app.logic.repository_boards import SqlBoardBlockStore
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch
from app.models.boards_and_blocks import BoardsAndBlocks, DeleteBoardsAndBlocks, PatchBoardsAndBlocks


def _board(board_id: str, team_id: str = "team-1") -> Board:
    return Board(id=board_id, team_id=team_id, create_at=10, update_at=10, properties={"k": [1, 2]})


def _block(block_id: str, board_id: str, parent_id: str = "", **kwargs) -> Block:
    return Block(
        id=block_id, board_id=board_id, parent_id=parent_id, type=kwargs.pop("type", "card"),
        create_at=10, update_at=10, **kwargs,
    )


def _count(engine, table: str) -> int:
    with engine.connect() as conn:
        return int(conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one())


def test_round_trip_preserves_json_payloads(store):
    store.create_boards_and_blocks(
        BoardsAndBlocks(
            boards=[_board("b1")],
            blocks=[_block("c1", "b1", fields={"contentOrder": [["a", "b"]], "icon": "x"})],
        )
    )
    board = store.get_board("b1")
    block = store.get_block("c1")
    assert board is not None and board.properties == {"k": [1, 2]}
    assert block is not None and block.fields == {"contentOrder": [["a", "b"]], "icon": "x"}
    assert store.get_board("missing") is None


def test_create_failure_mid_transaction_leaves_no_rows(store, engine, mocker):
    """A failure on the second block insert rolls back boards and the first block."""
    real_insert = SqlBoardBlockStore._insert_block
    calls = {"n": 0}

    def flaky_insert(self, conn, block):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("INSERT INTO block", {}, Exception("disk full"))
        return real_insert(self, conn, block)

    mocker.patch.object(SqlBoardBlockStore, "_insert_block", flaky_insert)
    bundle = BoardsAndBlocks(boards=[_board("b1")], blocks=[_block("c1", "b1"), _block("c2", "b1")])

    with pytest.raises(PersistenceError):
        store.create_boards_and_blocks(bundle)

    assert _count(engine, "board") == 0
    assert _count(engine, "block") == 0


def test_patch_boards_and_blocks_is_stamped(store):
    store.create_boards_and_blocks(BoardsAndBlocks(boards=[_board("b1")], blocks=[_block("c1", "b1")]))
    result = store.patch_boards_and_blocks(
        PatchBoardsAndBlocks(
            board_ids=["b1"], board_patches=[BoardPatch(title="T")],
            block_ids=["c1"], block_patches=[BlockPatch(title="C")],
        ),
        "user-9",
        99,
    )
    assert result.boards[0].title == "T"
    stored = store.get_block("c1")
    assert stored.title == "C" and stored.modified_by == "user-9" and stored.update_at == 99
    assert store.get_board("b1").team_id == "team-1"


def test_delete_boards_and_blocks_cascades(store, engine):
    store.create_boards_and_blocks(
        BoardsAndBlocks(
            boards=[_board("b1"), _board("b2")],
            blocks=[_block("c1", "b1"), _block("c2", "b2"), _block("c3", "b2")],
        )
    )
    store.delete_boards_and_blocks(DeleteBoardsAndBlocks(boards=["b1"], blocks=["c2"]))
    assert _count(engine, "board") == 1
    assert [b.id for b in store.get_blocks("b2")] == ["c3"]


def test_subtree_levels(store):
    store.create_boards_and_blocks(
        BoardsAndBlocks(
            boards=[_board("b1")],
            blocks=[
                _block("card", "b1", "b1"),
                _block("text", "b1", "card", type="text"),
                _block("comment", "b1", "text", type="comment"),
            ],
        )
    )
    assert sorted(b.id for b in store.get_subtree("b1", "card", 2)) == ["card", "text"]
    assert sorted(b.id for b in store.get_subtree("b1", "card", 3)) == ["card", "comment", "text"]


def test_get_blocks_filters(store):
    store.create_boards_and_blocks(
        BoardsAndBlocks(
            boards=[_board("b1")],
            blocks=[_block("card", "b1", "b1"), _block("text", "b1", "card", type="text")],
        )
    )
    assert [b.id for b in store.get_blocks("b1", parent_id="card")] == ["text"]
    assert [b.id for b in store.get_blocks("b1", block_type="card")] == ["card"]
    assert store.get_boards_for_team("team-1")[0].id == "b1"
