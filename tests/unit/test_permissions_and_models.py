"""Unit tests for the local permission checker and the wire models."""

from __future__ import annotations

import pytest

from app.logic.errors import ValidationError
from app.logic.metadata import SINGLE_USER
from app.logic.permissions import LocalPermissionChecker, Permission
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch
from app.models.boards_and_blocks import DeleteBoardsAndBlocks, ErrorResponse, PatchBoardsAndBlocks
from app.models.identifiers import encode_16bytes_base58, id_type_for_block, is_server_id, new_id


@pytest.fixture
def checker(fake_store, board_factory):
    fake_store.boards["b1"] = board_factory("b1", created_by="owner")
    return LocalPermissionChecker(fake_store)


def test_anonymous_actor_has_no_permissions(checker):
    assert checker.has_permission_to_team("", "team-1", Permission.VIEW_TEAM) is False
    assert checker.has_permission_to_board("", "b1", Permission.VIEW_BOARD) is False


def test_single_user_has_every_permission(checker):
    for permission in Permission:
        assert checker.has_permission_to_board(SINGLE_USER, "anything", permission) is True


def test_creator_only_permissions(checker):
    assert checker.has_permission_to_board("owner", "b1", Permission.DELETE_BOARD) is True
    assert checker.has_permission_to_board("other", "b1", Permission.DELETE_BOARD) is False
    assert checker.has_permission_to_board("other", "b1", Permission.MANAGE_BOARD_TYPE) is False
    assert checker.has_permission_to_board("other", "b1", Permission.MANAGE_BOARD_CARDS) is True


def test_missing_board_grants_nothing(checker):
    assert checker.has_permission_to_board("owner", "missing", Permission.VIEW_BOARD) is False


def test_board_type_aliases_are_normalised():
    assert Board(team_id="t", type="private").type == "P"
    assert Board(team_id="t", type="open").is_open
    assert BoardPatch(type="Private").type == "P"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"team_id": ""},
        {"team_id": "t", "type": "X"},
        {"team_id": "t", "minimum_role": "owner"},
    ],
)
def test_board_entity_validation(kwargs):
    with pytest.raises(ValidationError):
        Board(**kwargs).validate_entity()


def test_board_wire_shape_uses_camel_case():
    wire = Board.model_validate({"teamId": "t", "cardProperties": [{"id": "p1"}]}).to_wire()
    assert wire["teamId"] == "t"
    assert wire["cardProperties"] == [{"id": "p1"}]
    assert "team_id" not in wire


def test_board_patch_card_properties_replace_append_delete():
    board = Board(team_id="t", card_properties=[{"id": "p1", "name": "old"}, {"id": "p2"}])
    patch = BoardPatch(
        updated_card_properties=[{"id": "p1", "name": "new"}, {"id": "p3"}],
        deleted_card_properties=["p2"],
    )
    assert patch.apply(board).card_properties == [{"id": "p1", "name": "new"}, {"id": "p3"}]
    # Original untouched
    assert board.card_properties[0]["name"] == "old"


def test_block_patch_merges_and_deletes_fields():
    block = Block.model_validate({"id": "c", "boardId": "b", "type": "card", "fields": {"a": 1, "b": 2}})
    patched = BlockPatch.model_validate({"updatedFields": {"c": 3}, "deletedFields": ["a"], "parentId": "p"}).apply(block)
    assert patched.fields == {"b": 2, "c": 3}
    assert patched.parent_id == "p"
    assert block.fields == {"a": 1, "b": 2}


def test_patch_and_delete_envelopes_validate_structure():
    with pytest.raises(ValidationError):
        PatchBoardsAndBlocks.model_validate({"boardIDs": [], "boardPatches": []}).validate_structure()
    with pytest.raises(ValidationError):
        PatchBoardsAndBlocks.model_validate(
            {"boardIDs": ["b"], "boardPatches": [{}], "blockIDs": ["x"], "blockPatches": []}
        ).validate_structure()
    with pytest.raises(ValidationError):
        DeleteBoardsAndBlocks(boards=["b", " "]).validate_structure()


def test_identifiers_are_prefixed_fixed_width():
    value = new_id("b")
    assert value.startswith("b")
    assert is_server_id(value)
    assert encode_16bytes_base58(bytes(16)) == "1" * 22
    assert id_type_for_block("card") == "c"
    assert id_type_for_block("view") == "v"
    assert id_type_for_block("text") == "a"
    assert id_type_for_block("custom") == "7"


def test_error_response_wire_shape():
    body = ErrorResponse(error="access denied", error_code=401).model_dump(by_alias=True)
    assert body == {"error": "access denied", "errorCode": 401}
