"""
Tile key encoding.

A tile key is the canonical string ``"x-y-z"`` used as the grouping key in the
record store. The separator is never a digit, so the encoding is lossless and
keys from different zoom levels cannot collide. ``encode_tile_key`` and
``decode_tile_key`` are exact inverses for every valid tile.
"""

import re
from typing import Tuple

from ..exceptions import MalformedKey

SEPARATOR = "-"

_KEY_PATTERN = re.compile(r"^(0|[1-9][0-9]*)-(0|[1-9][0-9]*)-(0|[1-9][0-9]*)$")


def encode_tile_key(x: int, y: int, z: int) -> str:
    """Encode a tile index as ``"x-y-z"``."""
    if x < 0 or y < 0 or z < 0:
        raise ValueError(f"Tile components must be non-negative, got ({x}, {y}, {z})")
    return f"{int(x)}{SEPARATOR}{int(y)}{SEPARATOR}{int(z)}"


def decode_tile_key(key: str) -> Tuple[int, int, int]:
    """
    Decode ``"x-y-z"`` into ``(x, y, z)``.

    Only the exact canonical form is accepted (no signs, whitespace or leading
    zeros) so that decode(encode(t)) == t and encode(decode(k)) == k. Index
    bounds are checked as well.

    Raises:
        MalformedKey: if ``key`` is not a canonical tile key.
    """
    if not isinstance(key, str):
        raise MalformedKey(key, "expected a string")

    match = _KEY_PATTERN.match(key)
    if match is None:
        raise MalformedKey(key, "expected the form 'x-y-z'")

    x, y, z = (int(part) for part in match.groups())
    n = 1 << z
    if x >= n or y >= n:
        raise MalformedKey(key, f"index out of range for zoom {z}")
    return x, y, z
