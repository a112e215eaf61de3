"""Permission flag catalog and bitfield boundary helpers."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping

import discord

from shared.errors import InvalidBitfield

__all__ = [
    "PERMISSION_FLAGS",
    "format_bitfield",
    "parse_bitfield",
    "permission_flags_payload",
]


# discord.py keeps an older name as the canonical flag for these bits and
# exposes the API name only as an alias.
_API_NAMES = {
    "read_messages": "view_channel",
    "external_emojis": "use_external_emojis",
    "external_stickers": "use_external_stickers",
}


def _build_catalog() -> Mapping[str, int]:
    """One entry per bit, named the way Discord's API documents the flag.

    Iterating a Permissions instance yields discord.py's canonical names and
    skips its aliases; a canonical name is swapped for its API name only when
    that alias exists and maps to the same bit.
    """

    valid = discord.Permissions.VALID_FLAGS
    entries: dict[str, int] = {}
    for name, _ in discord.Permissions.none():
        bit = int(valid[name])
        public = _API_NAMES.get(name, name)
        if valid.get(public) != bit:
            public = name
        entries[public] = bit
    return MappingProxyType(dict(sorted(entries.items(), key=lambda item: (item[1], item[0]))))


PERMISSION_FLAGS: Mapping[str, int] = _build_catalog()


def permission_flags_payload() -> Dict[str, str]:
    """Return the catalog as ``name -> decimal string`` for JSON responses."""

    return {name: format_bitfield(value) for name, value in PERMISSION_FLAGS.items()}


def format_bitfield(value: int) -> str:
    return str(int(value))


def parse_bitfield(value: object, *, field: str = "bitfield") -> int:
    """Parse a permission bitfield received at the API boundary.

    Accepts a non-negative ``int`` or a string of decimal digits of any
    length. Anything else (booleans, floats, signs, hex, negative values)
    raises :class:`InvalidBitfield`.
    """

    if isinstance(value, bool):
        raise InvalidBitfield(detail=f"{field} must be a decimal string, got a boolean")
    if isinstance(value, int):
        if value < 0:
            raise InvalidBitfield(detail=f"{field} must not be negative")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text and text.isascii() and text.isdigit():
            return int(text)
        raise InvalidBitfield(detail=f"{field} must be a decimal string, got {value!r}")
    raise InvalidBitfield(detail=f"{field} must be a decimal string, got {type(value).__name__}")
