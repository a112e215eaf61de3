"""Guild hierarchy projection, role ordering and overwrite management."""

from __future__ import annotations

__all__ = [
    "console",
    "directory",
    "hierarchy",
    "overwrites",
    "role_order",
    "routes",
    "snapshot",
]
