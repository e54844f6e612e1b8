"""Server identifiers and the placeholder/assigned tagging used while linking.

Identifiers are a one-character type prefix followed by a fixed-width base58
rendering of a uuid4 (22 characters), e.g. ``b3Hq...`` for a board.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable, Union

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
ID_BYTES = 16
ID_LENGTH = 22

ID_TYPE_NONE = "7"
ID_TYPE_BOARD = "b"
ID_TYPE_CARD = "c"
ID_TYPE_VIEW = "v"
ID_TYPE_BLOCK = "a"

_CONTENT_BLOCK_TYPES = frozenset(
    {"text", "image", "divider", "checkbox", "comment", "attachment", "h1", "h2", "h3"}
)

IdFactory = Callable[[str], str]


def encode_16bytes_base58(raw: bytes) -> str:
    if not isinstance(raw, (bytes, bytearray)) or len(raw) != ID_BYTES:
        raise ValueError("base58 id encoder requires exactly 16 bytes")
    n = int.from_bytes(raw, "big")
    chars: list[str] = []
    while n > 0:
        n, rem = divmod(n, 58)
        chars.append(BASE58_ALPHABET[rem])
    encoded = "".join(reversed(chars)) if chars else BASE58_ALPHABET[0]
    return (BASE58_ALPHABET[0] * (ID_LENGTH - len(encoded))) + encoded


def new_id(id_type: str = ID_TYPE_NONE) -> str:
    """Return a fresh identifier carrying ``id_type`` as its prefix."""
    return f"{id_type}{encode_16bytes_base58(uuid.uuid4().bytes)}"


def id_type_for_block(block_type: str) -> str:
    if block_type == "card":
        return ID_TYPE_CARD
    if block_type == "view":
        return ID_TYPE_VIEW
    if block_type in _CONTENT_BLOCK_TYPES:
        return ID_TYPE_BLOCK
    return ID_TYPE_NONE


def is_server_id(value: str) -> bool:
    if not isinstance(value, str) or len(value) != ID_LENGTH + 1:
        return False
    return all(ch in BASE58_ALPHABET for ch in value[1:])


@dataclass(frozen=True)
class Placeholder:
    """A caller-chosen id that only expresses linkage inside one bundle."""

    value: str


@dataclass(frozen=True)
class Assigned:
    """An id issued by the server, either just now or by an earlier request."""

    value: str


Ref = Union[Placeholder, Assigned]


__all__ = [
    "ID_TYPE_NONE",
    "ID_TYPE_BOARD",
    "ID_TYPE_CARD",
    "ID_TYPE_VIEW",
    "ID_TYPE_BLOCK",
    "IdFactory",
    "encode_16bytes_base58",
    "new_id",
    "id_type_for_block",
    "is_server_id",
    "Placeholder",
    "Assigned",
    "Ref",
]
