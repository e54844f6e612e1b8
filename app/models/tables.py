"""ORM models for the board and block tables.

Only used to declare the schema (``Base.metadata.create_all``); the
repository talks to these tables through SQL text so that route handlers never
see ORM rows. JSON payloads are stored as text for SQLite/PostgreSQL parity.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class BoardRow(Base):  # type: ignore[valid-type]
    __tablename__ = "board"

    id = Column(String(36), primary_key=True)
    team_id = Column(String(36), nullable=False)
    channel_id = Column(String(36), nullable=False, default="")
    created_by = Column(String(36), nullable=False, default="")
    modified_by = Column(String(36), nullable=False, default="")
    type = Column(String(1), nullable=False)
    minimum_role = Column(String(36), nullable=False, default="")
    title = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    icon = Column(String(256), nullable=False, default="")
    show_description = Column(Boolean, nullable=False, default=False)
    is_template = Column(Boolean, nullable=False, default=False)
    template_version = Column(Integer, nullable=False, default=0)
    properties = Column(Text, nullable=False, default="{}")
    card_properties = Column(Text, nullable=False, default="[]")
    create_at = Column(BigInteger, nullable=False)
    update_at = Column(BigInteger, nullable=False)
    delete_at = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (Index("ix_board_team_id", "team_id"),)


class BlockRow(Base):  # type: ignore[valid-type]
    __tablename__ = "block"

    id = Column(String(36), primary_key=True)
    board_id = Column(String(36), nullable=False)
    parent_id = Column(String(36), nullable=False, default="")
    created_by = Column(String(36), nullable=False, default="")
    modified_by = Column(String(36), nullable=False, default="")
    schema = Column(BigInteger, nullable=False, default=1)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False, default="")
    fields = Column(Text, nullable=False, default="{}")
    create_at = Column(BigInteger, nullable=False)
    update_at = Column(BigInteger, nullable=False)
    delete_at = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        Index("ix_block_board_id", "board_id"),
        Index("ix_block_board_parent", "board_id", "parent_id"),
    )


__all__ = ["Base", "BoardRow", "BlockRow"]
