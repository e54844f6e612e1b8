"""Unit tests for single board and block operations."""

from __future__ import annotations

import pytest

from app.logic.audit import STATUS_SUCCESS
from app.logic.entities import BoardsService
from app.logic.errors import NotFound, PermissionDenied, ValidationError
from app.logic.permissions import Permission
from app.models.blocks import BlockPatch
from app.models.boards import BoardPatch


@pytest.fixture
def service(fake_store, allow_all, audit_sink, fixed_clock, sequential_ids):
    return BoardsService(fake_store, allow_all, audit_sink, clock=fixed_clock, new_id=sequential_ids)


@pytest.fixture
def board(fake_store, board_factory):
    b = board_factory("b1", created_by="user-1")
    fake_store.boards[b.id] = b
    return b


@pytest.fixture
def tree(fake_store, board, block_factory):
    """card -> text -> comment, plus an orphaned text."""
    for block in (
        block_factory("card", board_id="b1", parent_id="b1"),
        block_factory("text", board_id="b1", parent_id="card", block_type="text"),
        block_factory("comment", board_id="b1", parent_id="text", block_type="comment"),
        block_factory("orphan", board_id="b1", parent_id="deleted-card", block_type="text"),
    ):
        fake_store.blocks[block.id] = block
    return fake_store


def test_create_board_issues_id_and_stamps(service, board_factory, fake_store, fixed_clock):
    created = service.create_board(board_factory("", title="New"), "user-1")
    assert created.id.startswith("b")
    assert created.created_by == "user-1"
    assert created.create_at == created.update_at == fixed_clock()
    assert fake_store.boards[created.id].title == "New"


def test_create_private_board_needs_private_permission(
    fake_store, audit_sink, permissions_factory, board_factory
):
    service = BoardsService(fake_store, permissions_factory(denied=[Permission.CREATE_PRIVATE_CHANNEL]), audit_sink)
    with pytest.raises(PermissionDenied):
        service.create_board(board_factory("", type="P"), "user-1")
    # Open boards are still fine
    service.create_board(board_factory("", type="O"), "user-1")


def test_create_board_validates_team(service, board_factory):
    with pytest.raises(ValidationError):
        service.create_board(board_factory("", team_id=" "), "user-1")


def test_get_board_missing_is_not_found(service):
    with pytest.raises(NotFound):
        service.get_board("nope", "user-1")


def test_patch_board_merges_properties(service, board, fake_store):
    fake_store.boards["b1"] = board.model_copy(update={"properties": {"a": 1, "b": 2}})
    updated = service.patch_board(
        "b1", BoardPatch(updated_properties={"c": 3}, deleted_properties=["a"]), "user-2"
    )
    assert updated.properties == {"b": 2, "c": 3}
    assert updated.modified_by == "user-2"


def test_patch_board_rejects_invalid_type(service, board):
    with pytest.raises(ValidationError):
        service.patch_board("b1", BoardPatch(type="X"), "user-1")


def test_delete_board_removes_blocks(service, tree):
    service.delete_board("b1", "user-1")
    assert tree.boards == {} and tree.blocks == {}


def test_get_blocks_by_block_id_on_other_board_is_not_found(service, tree, board_factory, block_factory):
    tree.boards["b2"] = board_factory("b2")
    tree.blocks["elsewhere"] = block_factory("elsewhere", board_id="b2")
    with pytest.raises(NotFound):
        service.get_blocks("b1", "user-1", block_id="elsewhere")
    assert [b.id for b in service.get_blocks("b1", "user-1", block_id="card")] == ["card"]


def test_get_blocks_filters_by_parent_and_type(service, tree):
    assert [b.id for b in service.get_blocks("b1", "user-1", parent_id="card")] == ["text"]
    assert [b.id for b in service.get_blocks("b1", "user-1", block_type="comment")] == ["comment"]
    assert len(service.get_blocks("b1", "user-1", parent_id="card", all_blocks=True)) == 4


def test_insert_blocks_links_new_blocks(service, board, block_factory, fake_store, fixed_clock):
    inserted = service.insert_blocks(
        "b1",
        [
            block_factory("tmp-card", board_id="b1", parent_id="b1"),
            block_factory("tmp-text", board_id="b1", parent_id="tmp-card", block_type="text"),
        ],
        "user-1",
    )
    card, text = inserted
    assert text.parent_id == card.id
    assert card.parent_id == "b1"
    assert {b.update_at for b in inserted} == {fixed_clock()}
    assert set(fake_store.blocks) == {card.id, text.id}


def test_insert_blocks_rejects_foreign_board_id(service, board, block_factory):
    with pytest.raises(ValidationError, match="invalid BoardID"):
        service.insert_blocks("b1", [block_factory("x", board_id="b2")], "user-1")


def test_patch_block_requires_block_on_board(service, tree):
    with pytest.raises(NotFound):
        service.patch_block("b1", "missing", BlockPatch(title="t"), "user-1")
    updated = service.patch_block("b1", "card", BlockPatch(title="t", deleted_fields=["x"]), "user-1")
    assert updated.title == "t"


def test_delete_block_only_removes_that_block(service, tree):
    service.delete_block("b1", "card", "user-1")
    assert "card" not in tree.blocks
    assert "text" in tree.blocks


def test_subtree_two_levels_excludes_grandchildren(service, tree):
    result = service.get_subtree("b1", "card", "user-1", levels=2)
    assert [b.id for b in result.blocks] == ["card", "text"]


def test_subtree_three_levels_includes_grandchildren(service, tree, audit_sink):
    result = service.get_subtree("b1", "card", "user-1", levels=3)
    assert [b.id for b in result.blocks] == ["card", "text", "comment"]
    assert audit_sink.records[-1].meta["orphanCount"] == 0


@pytest.mark.parametrize("levels", [0, 1, 4])
def test_subtree_rejects_other_levels(service, tree, levels):
    with pytest.raises(ValidationError):
        service.get_subtree("b1", "card", "user-1", levels=levels)


def test_export_drops_orphans_and_reports_count(service, tree, audit_sink):
    result = service.export_blocks("b1", "user-1")
    assert [b.id for b in result.blocks] == ["card", "text", "comment"]
    assert result.orphan_count == 1
    record = audit_sink.records[-1]
    assert record.status == STATUS_SUCCESS
    assert record.meta["orphanCount"] == 1


def test_export_from_root_id(service, tree):
    result = service.export_blocks("b1", "user-1", root_id="text")
    assert [b.id for b in result.blocks] == ["text", "comment"]


def test_import_rehomes_blocks_onto_board(service, board, block_factory, fake_store):
    exported = [
        block_factory("old-card", board_id="old-board", parent_id="old-board"),
        block_factory("old-text", board_id="old-board", parent_id="old-card", block_type="text", create_at=0),
    ]
    card, text = service.import_blocks("b1", exported, "user-1")
    assert card.board_id == text.board_id == "b1"
    assert card.parent_id == "b1"
    assert text.parent_id == card.id
    assert text.create_at == text.update_at
    assert set(fake_store.blocks) == {card.id, text.id}


def test_view_board_permission_is_required_for_reads(fake_store, board, audit_sink, permissions_factory):
    service = BoardsService(fake_store, permissions_factory(denied=[Permission.VIEW_BOARD]), audit_sink)
    with pytest.raises(PermissionDenied):
        service.get_blocks("b1", "user-1")
    with pytest.raises(PermissionDenied):
        service.export_blocks("b1", "user-1")
