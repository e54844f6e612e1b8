"""Block wire models.

Blocks carry an opaque ``fields`` payload whose meaning depends on the type
tag; nothing in the service interprets it apart from the id references that
the resolver rewrites (``contentOrder``, ``cardOrder``, ``defaultTemplateId``).
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Block(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    board_id: str = Field(default="", alias="boardId")
    parent_id: str = Field(default="", alias="parentId")
    created_by: str = Field(default="", alias="createdBy")
    modified_by: str = Field(default="", alias="modifiedBy")
    schema_version: int = Field(default=1, alias="schema")
    type: str = ""
    title: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)
    create_at: int = Field(default=0, alias="createAt")
    update_at: int = Field(default=0, alias="updateAt")
    delete_at: int = Field(default=0, alias="deleteAt")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BlockPatch(BaseModel):
    """Partial update for a block. Absent attributes are left untouched."""

    model_config = ConfigDict(populate_by_name=True)

    parent_id: Optional[str] = Field(default=None, alias="parentId")
    schema_version: Optional[int] = Field(default=None, alias="schema")
    type: Optional[str] = None
    title: Optional[str] = None
    updated_fields: dict[str, Any] = Field(default_factory=dict, alias="updatedFields")
    deleted_fields: list[str] = Field(default_factory=list, alias="deletedFields")

    def apply(self, block: Block) -> Block:
        """Return a copy of ``block`` with this patch applied."""
        update: dict[str, Any] = {}
        if self.parent_id is not None:
            update["parent_id"] = self.parent_id
        if self.schema_version is not None:
            update["schema_version"] = self.schema_version
        if self.type is not None:
            update["type"] = self.type
        if self.title is not None:
            update["title"] = self.title

        fields = copy.deepcopy(block.fields)
        fields.update(copy.deepcopy(self.updated_fields))
        for key in self.deleted_fields:
            fields.pop(key, None)
        update["fields"] = fields
        return block.model_copy(update=update)


__all__ = ["Block", "BlockPatch"]
