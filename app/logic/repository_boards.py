"""Board and block persistence.

``BoardBlockStore`` is the interface the logic layer depends on;
``SqlBoardBlockStore`` implements it with SQL text over a SQLAlchemy Engine.
Composite operations run inside a single ``engine.begin()`` block, so either
every row is written or none is.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

from sqlalchemy import bindparam
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.logic.errors import PersistenceError
from app.models.blocks import Block, BlockPatch
from app.models.boards import Board, BoardPatch
from app.models.boards_and_blocks import BoardsAndBlocks, DeleteBoardsAndBlocks, PatchBoardsAndBlocks

logger = logging.getLogger(__name__)


class BoardBlockStore(Protocol):
    def get_board(self, board_id: str) -> Optional[Board]:
        ...

    def get_boards_for_team(self, team_id: str) -> list[Board]:
        ...

    def get_block(self, block_id: str) -> Optional[Block]:
        ...

    def get_blocks(
        self, board_id: str, parent_id: Optional[str] = None, block_type: Optional[str] = None
    ) -> list[Block]:
        ...

    def get_subtree(self, board_id: str, block_id: str, levels: int) -> list[Block]:
        ...

    def insert_board(self, board: Board) -> Board:
        ...

    def patch_board(self, board_id: str, patch: BoardPatch, modified_by: str, update_at: int) -> Board:
        ...

    def delete_board(self, board_id: str) -> None:
        ...

    def insert_blocks(self, blocks: list[Block]) -> list[Block]:
        ...

    def patch_block(self, block_id: str, patch: BlockPatch, modified_by: str, update_at: int) -> Block:
        ...

    def delete_block(self, block_id: str) -> None:
        ...

    def create_boards_and_blocks(self, bundle: BoardsAndBlocks) -> BoardsAndBlocks:
        ...

    def patch_boards_and_blocks(
        self, patch_set: PatchBoardsAndBlocks, modified_by: str, update_at: int
    ) -> BoardsAndBlocks:
        ...

    def delete_boards_and_blocks(self, delete_set: DeleteBoardsAndBlocks) -> None:
        ...


_BOARD_COLUMNS = (
    "id, team_id, channel_id, created_by, modified_by, type, minimum_role, title, description, "
    "icon, show_description, is_template, template_version, properties, card_properties, "
    "create_at, update_at, delete_at"
)
_BLOCK_COLUMNS = (
    "id, board_id, parent_id, created_by, modified_by, schema, type, title, fields, "
    "create_at, update_at, delete_at"
)


def _loads(raw: Any, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    if isinstance(raw, (dict, list)):
        return raw
    return json.loads(raw)


def _board_from_row(row: Any) -> Board:
    m = row._mapping
    return Board(
        id=m["id"],
        team_id=m["team_id"],
        channel_id=m["channel_id"] or "",
        created_by=m["created_by"] or "",
        modified_by=m["modified_by"] or "",
        type=m["type"],
        minimum_role=m["minimum_role"] or "",
        title=m["title"] or "",
        description=m["description"] or "",
        icon=m["icon"] or "",
        show_description=bool(m["show_description"]),
        is_template=bool(m["is_template"]),
        template_version=int(m["template_version"] or 0),
        properties=_loads(m["properties"], {}),
        card_properties=_loads(m["card_properties"], []),
        create_at=int(m["create_at"]),
        update_at=int(m["update_at"]),
        delete_at=int(m["delete_at"] or 0),
    )


def _block_from_row(row: Any) -> Block:
    m = row._mapping
    return Block(
        id=m["id"],
        board_id=m["board_id"],
        parent_id=m["parent_id"] or "",
        created_by=m["created_by"] or "",
        modified_by=m["modified_by"] or "",
        schema_version=int(m["schema"] or 1),
        type=m["type"],
        title=m["title"] or "",
        fields=_loads(m["fields"], {}),
        create_at=int(m["create_at"]),
        update_at=int(m["update_at"]),
        delete_at=int(m["delete_at"] or 0),
    )


def _board_params(board: Board) -> dict[str, Any]:
    return {
        "id": board.id,
        "team_id": board.team_id,
        "channel_id": board.channel_id,
        "created_by": board.created_by,
        "modified_by": board.modified_by,
        "type": board.type,
        "minimum_role": board.minimum_role,
        "title": board.title,
        "description": board.description,
        "icon": board.icon,
        "show_description": board.show_description,
        "is_template": board.is_template,
        "template_version": board.template_version,
        "properties": json.dumps(board.properties),
        "card_properties": json.dumps(board.card_properties),
        "create_at": board.create_at,
        "update_at": board.update_at,
        "delete_at": board.delete_at,
    }


def _block_params(block: Block) -> dict[str, Any]:
    return {
        "id": block.id,
        "board_id": block.board_id,
        "parent_id": block.parent_id,
        "created_by": block.created_by,
        "modified_by": block.modified_by,
        "schema": block.schema_version,
        "type": block.type,
        "title": block.title,
        "fields": json.dumps(block.fields),
        "create_at": block.create_at,
        "update_at": block.update_at,
        "delete_at": block.delete_at,
    }


class SqlBoardBlockStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -- connection-level helpers, shared by single and composite operations

    def _select_board(self, conn: Connection, board_id: str) -> Optional[Board]:
        row = conn.execute(
            sql_text(f"SELECT {_BOARD_COLUMNS} FROM board WHERE id = :id"),
            {"id": board_id},
        ).fetchone()
        return _board_from_row(row) if row else None

    def _select_block(self, conn: Connection, block_id: str) -> Optional[Block]:
        row = conn.execute(
            sql_text(f"SELECT {_BLOCK_COLUMNS} FROM block WHERE id = :id"),
            {"id": block_id},
        ).fetchone()
        return _block_from_row(row) if row else None

    def _insert_board(self, conn: Connection, board: Board) -> None:
        placeholders = ", ".join(f":{c.strip()}" for c in _BOARD_COLUMNS.split(","))
        conn.execute(
            sql_text(f"INSERT INTO board ({_BOARD_COLUMNS}) VALUES ({placeholders})"),
            _board_params(board),
        )

    def _insert_block(self, conn: Connection, block: Block) -> None:
        placeholders = ", ".join(f":{c.strip()}" for c in _BLOCK_COLUMNS.split(","))
        conn.execute(
            sql_text(f"INSERT INTO block ({_BLOCK_COLUMNS}) VALUES ({placeholders})"),
            _block_params(block),
        )

    def _update_board(self, conn: Connection, board: Board) -> None:
        params = _board_params(board)
        assignments = ", ".join(f"{k} = :{k}" for k in params if k not in ("id", "team_id", "created_by", "create_at"))
        conn.execute(sql_text(f"UPDATE board SET {assignments} WHERE id = :id"), params)

    def _update_block(self, conn: Connection, block: Block) -> None:
        params = _block_params(block)
        assignments = ", ".join(f"{k} = :{k}" for k in params if k not in ("id", "board_id", "created_by", "create_at"))
        conn.execute(sql_text(f"UPDATE block SET {assignments} WHERE id = :id"), params)

    def _patch_board(
        self, conn: Connection, board_id: str, patch: BoardPatch, modified_by: str, update_at: int
    ) -> Board:
        current = self._select_board(conn, board_id)
        if current is None:
            raise PersistenceError(f"board {board_id} vanished during patch")
        updated = patch.apply(current)
        updated.modified_by = modified_by
        updated.update_at = update_at
        self._update_board(conn, updated)
        return updated

    def _patch_block(
        self, conn: Connection, block_id: str, patch: BlockPatch, modified_by: str, update_at: int
    ) -> Block:
        current = self._select_block(conn, block_id)
        if current is None:
            raise PersistenceError(f"block {block_id} vanished during patch")
        updated = patch.apply(current)
        updated.modified_by = modified_by
        updated.update_at = update_at
        self._update_block(conn, updated)
        return updated

    def _delete_board(self, conn: Connection, board_id: str) -> None:
        conn.execute(sql_text("DELETE FROM block WHERE board_id = :id"), {"id": board_id})
        conn.execute(sql_text("DELETE FROM board WHERE id = :id"), {"id": board_id})

    def _delete_block(self, conn: Connection, block_id: str) -> None:
        conn.execute(sql_text("DELETE FROM block WHERE id = :id"), {"id": block_id})

    def _fail(self, operation: str, exc: SQLAlchemyError) -> PersistenceError:
        logger.error("store_%s_failed", operation, exc_info=True)
        return PersistenceError(f"{operation} failed")

    # -- reads

    def get_board(self, board_id: str) -> Optional[Board]:
        try:
            with self.engine.connect() as conn:
                return self._select_board(conn, board_id)
        except SQLAlchemyError as exc:
            raise self._fail("get_board", exc) from exc

    def get_boards_for_team(self, team_id: str) -> list[Board]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    sql_text(
                        f"SELECT {_BOARD_COLUMNS} FROM board "
                        "WHERE team_id = :team_id AND is_template = :tpl ORDER BY create_at, id"
                    ),
                    {"team_id": team_id, "tpl": False},
                ).fetchall()
        except SQLAlchemyError as exc:
            raise self._fail("get_boards_for_team", exc) from exc
        return [_board_from_row(r) for r in rows]

    def get_block(self, block_id: str) -> Optional[Block]:
        try:
            with self.engine.connect() as conn:
                return self._select_block(conn, block_id)
        except SQLAlchemyError as exc:
            raise self._fail("get_block", exc) from exc

    def get_blocks(
        self, board_id: str, parent_id: Optional[str] = None, block_type: Optional[str] = None
    ) -> list[Block]:
        clauses = ["board_id = :board_id"]
        params: dict[str, Any] = {"board_id": board_id}
        if parent_id is not None:
            clauses.append("parent_id = :parent_id")
            params["parent_id"] = parent_id
        if block_type is not None:
            clauses.append("type = :type")
            params["type"] = block_type
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    sql_text(
                        f"SELECT {_BLOCK_COLUMNS} FROM block WHERE {' AND '.join(clauses)} "
                        "ORDER BY create_at, id"
                    ),
                    params,
                ).fetchall()
        except SQLAlchemyError as exc:
            raise self._fail("get_blocks", exc) from exc
        return [_block_from_row(r) for r in rows]

    def get_subtree(self, board_id: str, block_id: str, levels: int) -> list[Block]:
        """Return the block, its children and, for ``levels == 3``, its grandchildren."""
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    sql_text(
                        f"SELECT {_BLOCK_COLUMNS} FROM block WHERE board_id = :board_id "
                        "AND (id = :root OR parent_id = :root) ORDER BY create_at, id"
                    ),
                    {"board_id": board_id, "root": block_id},
                ).fetchall()
                blocks = [_block_from_row(r) for r in rows]
                if levels >= 3:
                    child_ids = [b.id for b in blocks if b.id != block_id]
                    if child_ids:
                        stmt = sql_text(
                            f"SELECT {_BLOCK_COLUMNS} FROM block WHERE board_id = :board_id "
                            "AND parent_id IN :parents ORDER BY create_at, id"
                        ).bindparams(bindparam("parents", expanding=True))
                        grand = conn.execute(stmt, {"board_id": board_id, "parents": child_ids}).fetchall()
                        blocks.extend(_block_from_row(r) for r in grand)
        except SQLAlchemyError as exc:
            raise self._fail("get_subtree", exc) from exc
        return blocks

    # -- single-entity writes

    def insert_board(self, board: Board) -> Board:
        try:
            with self.engine.begin() as conn:
                self._insert_board(conn, board)
        except SQLAlchemyError as exc:
            raise self._fail("insert_board", exc) from exc
        return board

    def patch_board(self, board_id: str, patch: BoardPatch, modified_by: str, update_at: int) -> Board:
        try:
            with self.engine.begin() as conn:
                return self._patch_board(conn, board_id, patch, modified_by, update_at)
        except SQLAlchemyError as exc:
            raise self._fail("patch_board", exc) from exc

    def delete_board(self, board_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                self._delete_board(conn, board_id)
        except SQLAlchemyError as exc:
            raise self._fail("delete_board", exc) from exc

    def insert_blocks(self, blocks: list[Block]) -> list[Block]:
        try:
            with self.engine.begin() as conn:
                for block in blocks:
                    self._insert_block(conn, block)
        except SQLAlchemyError as exc:
            raise self._fail("insert_blocks", exc) from exc
        return blocks

    def patch_block(self, block_id: str, patch: BlockPatch, modified_by: str, update_at: int) -> Block:
        try:
            with self.engine.begin() as conn:
                return self._patch_block(conn, block_id, patch, modified_by, update_at)
        except SQLAlchemyError as exc:
            raise self._fail("patch_block", exc) from exc

    def delete_block(self, block_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                self._delete_block(conn, block_id)
        except SQLAlchemyError as exc:
            raise self._fail("delete_block", exc) from exc

    # -- composite writes

    def create_boards_and_blocks(self, bundle: BoardsAndBlocks) -> BoardsAndBlocks:
        try:
            with self.engine.begin() as conn:
                for board in bundle.boards:
                    self._insert_board(conn, board)
                for block in bundle.blocks:
                    self._insert_block(conn, block)
        except SQLAlchemyError as exc:
            raise self._fail("create_boards_and_blocks", exc) from exc
        logger.info("boards_and_blocks_created boards=%d blocks=%d", len(bundle.boards), len(bundle.blocks))
        return bundle

    def patch_boards_and_blocks(
        self, patch_set: PatchBoardsAndBlocks, modified_by: str, update_at: int
    ) -> BoardsAndBlocks:
        try:
            with self.engine.begin() as conn:
                boards = [
                    self._patch_board(conn, board_id, patch, modified_by, update_at)
                    for board_id, patch in patch_set.board_pairs()
                ]
                blocks = [
                    self._patch_block(conn, block_id, patch, modified_by, update_at)
                    for block_id, patch in patch_set.block_pairs()
                ]
        except SQLAlchemyError as exc:
            raise self._fail("patch_boards_and_blocks", exc) from exc
        return BoardsAndBlocks(boards=boards, blocks=blocks)

    def delete_boards_and_blocks(self, delete_set: DeleteBoardsAndBlocks) -> None:
        try:
            with self.engine.begin() as conn:
                for block_id in delete_set.blocks:
                    self._delete_block(conn, block_id)
                for board_id in delete_set.boards:
                    self._delete_board(conn, board_id)
        except SQLAlchemyError as exc:
            raise self._fail("delete_boards_and_blocks", exc) from exc
        logger.info(
            "boards_and_blocks_deleted boards=%d blocks=%d", len(delete_set.boards), len(delete_set.blocks)
        )


__all__ = ["BoardBlockStore", "SqlBoardBlockStore"]
