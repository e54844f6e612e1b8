"""Permission names and the checker interface consulted before any write.

The policy itself lives outside this service; ``LocalPermissionChecker`` is
the default used when nothing else is wired in.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from app.logic.metadata import SINGLE_USER

if TYPE_CHECKING:  # pragma: no cover
    from app.logic.repository_boards import BoardBlockStore

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    VIEW_TEAM = "view_team"
    VIEW_BOARD = "view_board"
    MANAGE_BOARD_CARDS = "manage_board_cards"
    MANAGE_BOARD_PROPERTIES = "manage_board_properties"
    MANAGE_BOARD_TYPE = "manage_board_type"
    DELETE_BOARD = "delete_board"
    CREATE_PUBLIC_CHANNEL = "create_public_channel"
    CREATE_PRIVATE_CHANNEL = "create_private_channel"


# Board permissions reserved to whoever created the board
_CREATOR_ONLY = frozenset({Permission.DELETE_BOARD, Permission.MANAGE_BOARD_TYPE})


class PermissionChecker(Protocol):
    def has_permission_to_team(self, user_id: str, team_id: str, permission: Permission) -> bool:
        ...

    def has_permission_to_board(self, user_id: str, board_id: str, permission: Permission) -> bool:
        ...


class LocalPermissionChecker:
    """Permissive default for deployments without an external policy.

    Anonymous actors get nothing and the single-user actor gets everything.
    Other actors may act on any team and on any existing board, except that
    deleting a board or changing its type is limited to its creator.
    """

    def __init__(self, store: "BoardBlockStore") -> None:
        self.store = store

    def has_permission_to_team(self, user_id: str, team_id: str, permission: Permission) -> bool:
        if not user_id:
            return False
        if user_id == SINGLE_USER:
            return True
        return bool(team_id)

    def has_permission_to_board(self, user_id: str, board_id: str, permission: Permission) -> bool:
        if not user_id:
            return False
        if user_id == SINGLE_USER:
            return True
        board = self.store.get_board(board_id)
        if board is None:
            logger.debug("permission_denied board_missing board_id=%s permission=%s", board_id, permission.value)
            return False
        if permission in _CREATOR_ONLY:
            return board.created_by == user_id
        return True


__all__ = ["Permission", "PermissionChecker", "LocalPermissionChecker"]
