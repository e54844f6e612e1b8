"""Board wire models and their entity validation rules."""

from __future__ import annotations

import copy
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.logic.errors import ValidationError

BOARD_TYPE_OPEN = "O"
BOARD_TYPE_PRIVATE = "P"
BOARD_TYPES = frozenset({BOARD_TYPE_OPEN, BOARD_TYPE_PRIVATE})

# Accepted on input only; always stored and returned as O/P
_BOARD_TYPE_ALIASES = {"open": BOARD_TYPE_OPEN, "private": BOARD_TYPE_PRIVATE}

BOARD_ROLES = frozenset({"", "admin", "editor", "commenter", "viewer"})


def _normalize_board_type(value: Any) -> Any:
    if isinstance(value, str):
        return _BOARD_TYPE_ALIASES.get(value.strip().lower(), value)
    return value


class Board(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    team_id: str = Field(default="", alias="teamId")
    channel_id: str = Field(default="", alias="channelId")
    created_by: str = Field(default="", alias="createdBy")
    modified_by: str = Field(default="", alias="modifiedBy")
    type: str = BOARD_TYPE_OPEN
    minimum_role: str = Field(default="", alias="minimumRole")
    title: str = ""
    description: str = ""
    icon: str = ""
    show_description: bool = Field(default=False, alias="showDescription")
    is_template: bool = Field(default=False, alias="isTemplate")
    template_version: int = Field(default=0, alias="templateVersion")
    properties: dict[str, Any] = Field(default_factory=dict)
    card_properties: list[dict[str, Any]] = Field(default_factory=list, alias="cardProperties")
    create_at: int = Field(default=0, alias="createAt")
    update_at: int = Field(default=0, alias="updateAt")
    delete_at: int = Field(default=0, alias="deleteAt")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_board_type(v)

    @property
    def is_open(self) -> bool:
        return self.type == BOARD_TYPE_OPEN

    @property
    def is_private(self) -> bool:
        return self.type == BOARD_TYPE_PRIVATE

    def validate_entity(self) -> None:
        """Raise ``ValidationError`` unless the board may be stored as-is."""
        if not self.team_id.strip():
            raise ValidationError("invalid-team-id")
        if self.type not in BOARD_TYPES:
            raise ValidationError("invalid-board-type")
        if self.minimum_role not in BOARD_ROLES:
            raise ValidationError("invalid-board-minimum-role")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BoardPatch(BaseModel):
    """Partial update for a board; ``teamId`` is deliberately not patchable."""

    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    minimum_role: Optional[str] = Field(default=None, alias="minimumRole")
    title: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    show_description: Optional[bool] = Field(default=None, alias="showDescription")
    channel_id: Optional[str] = Field(default=None, alias="channelId")
    updated_properties: dict[str, Any] = Field(default_factory=dict, alias="updatedProperties")
    deleted_properties: list[str] = Field(default_factory=list, alias="deletedProperties")
    updated_card_properties: list[dict[str, Any]] = Field(
        default_factory=list, alias="updatedCardProperties"
    )
    deleted_card_properties: list[str] = Field(default_factory=list, alias="deletedCardProperties")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_board_type(v)

    @property
    def changes_type(self) -> bool:
        return self.type is not None

    def validate_patch(self) -> None:
        if self.type is not None and self.type not in BOARD_TYPES:
            raise ValidationError("invalid-board-type")
        if self.minimum_role is not None and self.minimum_role not in BOARD_ROLES:
            raise ValidationError("invalid-board-minimum-role")

    def apply(self, board: Board) -> Board:
        """Return a copy of ``board`` with this patch applied."""
        update: dict[str, Any] = {}
        for attr in ("type", "minimum_role", "title", "description", "icon", "show_description", "channel_id"):
            value = getattr(self, attr)
            if value is not None:
                update[attr] = value

        properties = copy.deepcopy(board.properties)
        properties.update(copy.deepcopy(self.updated_properties))
        for key in self.deleted_properties:
            properties.pop(key, None)
        update["properties"] = properties

        card_properties = [copy.deepcopy(p) for p in board.card_properties]
        for incoming in self.updated_card_properties:
            incoming_id = incoming.get("id")
            for idx, existing in enumerate(card_properties):
                if incoming_id is not None and existing.get("id") == incoming_id:
                    card_properties[idx] = copy.deepcopy(incoming)
                    break
            else:
                card_properties.append(copy.deepcopy(incoming))
        if self.deleted_card_properties:
            dropped = set(self.deleted_card_properties)
            card_properties = [p for p in card_properties if p.get("id") not in dropped]
        update["card_properties"] = card_properties

        return board.model_copy(update=update)


__all__ = [
    "BOARD_TYPE_OPEN",
    "BOARD_TYPE_PRIVATE",
    "BOARD_TYPES",
    "BOARD_ROLES",
    "Board",
    "BoardPatch",
]
