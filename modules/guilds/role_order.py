"""Structural validation for bulk role reorder requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from shared.errors import InvalidEntry, InvalidRequestShape

__all__ = ["RolePosition", "normalize_snowflake", "validate_reorder"]

log = logging.getLogger("guildconsole.role_order")

_MAX_SNOWFLAKE_DIGITS = 20


@dataclass(frozen=True, slots=True)
class RolePosition:
    role_id: str
    position: int

    def to_payload(self) -> dict[str, Any]:
        return {"role": self.role_id, "position": self.position}


def normalize_snowflake(value: object) -> str | None:
    """Return ``value`` as snowflake text, or ``None`` if it is not one."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text and text.isascii() and text.isdigit() and len(text) <= _MAX_SNOWFLAKE_DIGITS:
            return text
    return None


def _entry(index: int, raw: object) -> RolePosition:
    if not isinstance(raw, Mapping):
        raise InvalidEntry(
            "Invalid role position entry",
            detail=f"entry {index} must be an object with 'role' and 'position'",
        )
    role_id = normalize_snowflake(raw.get("role"))
    if role_id is None:
        raise InvalidEntry(
            "Invalid role position entry",
            detail=f"entry {index}: 'role' must be a role id, got {raw.get('role')!r}",
        )
    position = raw.get("position")
    if isinstance(position, bool) or not isinstance(position, int):
        raise InvalidEntry(
            "Invalid role position entry",
            detail=f"entry {index}: 'position' must be an integer, got {position!r}",
        )
    return RolePosition(role_id=role_id, position=position)


def validate_reorder(payload: object) -> tuple[RolePosition, ...]:
    """Validate a reorder body and return its entries in request order.

    Only structure is checked: a list of ``{"role": id, "position": int}``
    objects, with no role or position repeated inside the request. Partial
    reorders and gaps between positions are accepted and forwarded as-is.
    """

    if not isinstance(payload, (list, tuple)):
        raise InvalidRequestShape(detail=f"got {type(payload).__name__}")

    entries: list[RolePosition] = []
    seen_roles: set[str] = set()
    seen_positions: set[int] = set()
    for index, raw in enumerate(payload):
        entry = _entry(index, raw)
        if entry.role_id in seen_roles:
            raise InvalidEntry(
                "Invalid role position entry",
                detail=f"entry {index}: role {entry.role_id} listed more than once",
            )
        if entry.position in seen_positions:
            raise InvalidEntry(
                "Invalid role position entry",
                detail=f"entry {index}: position {entry.position} listed more than once",
            )
        seen_roles.add(entry.role_id)
        seen_positions.add(entry.position)
        entries.append(entry)

    log.debug("reorder request validated", extra={"entries": len(entries)})
    return tuple(entries)
