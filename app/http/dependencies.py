"""FastAPI dependencies shared by the routers.

Session validation happens upstream; this module only maps what arrives on
the request to an actor id and hands out the collaborators built by
``create_app``.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request

from app.logic.coordinator import BoardsAndBlocksCoordinator
from app.logic.entities import BoardsService
from app.logic.errors import Unauthorized
from app.logic.metadata import SINGLE_USER

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def _bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def get_actor_id(request: Request) -> str:
    """Return the acting user id or raise ``Unauthorized``.

    A bearer token equal to the configured single-user token selects the
    single-user actor; otherwise the upstream session layer's user header is
    used. The single-user sentinel is only reachable through the token.
    """
    single_user_token = request.app.state.config.auth.single_user_token
    token = _bearer_token(request)
    if single_user_token and token and hmac.compare_digest(token, single_user_token):
        return SINGLE_USER
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        logger.debug("actor_unresolved path=%s", request.url.path)
        raise Unauthorized()
    if user_id == SINGLE_USER:
        logger.warning("reserved_actor_header path=%s", request.url.path)
        raise Unauthorized()
    return user_id


def get_request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "") or "")


def get_coordinator(request: Request) -> BoardsAndBlocksCoordinator:
    return request.app.state.coordinator


def get_boards_service(request: Request) -> BoardsService:
    return request.app.state.boards_service


__all__ = [
    "USER_ID_HEADER",
    "get_actor_id",
    "get_request_id",
    "get_coordinator",
    "get_boards_service",
]
