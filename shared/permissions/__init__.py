"""Permission helpers exposed as the public package surface."""

from __future__ import annotations

from shared.permissions.flags import (
    PERMISSION_FLAGS,
    format_bitfield,
    parse_bitfield,
    permission_flags_payload,
)

__all__ = [
    "PERMISSION_FLAGS",
    "format_bitfield",
    "parse_bitfield",
    "permission_flags_payload",
]
