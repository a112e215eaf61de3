"""Application façade behind the HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import discord

from shared.errors import GuildNotFound, InvalidBitfield, InvalidEntry, InvalidRequestShape
from shared.logging import set_guild_context
from shared.permissions import parse_bitfield, permission_flags_payload

from .directory import Directory
from .hierarchy import project_guild
from .overwrites import OverwriteReconciler
from .role_order import normalize_snowflake, validate_reorder
from .snapshot import SnapshotSource, role_payload

__all__ = ["GuildConsole", "parse_color"]

log = logging.getLogger("guildconsole.console")

_MAX_COLOR = 0xFFFFFF


def parse_color(value: object) -> Optional[int]:
    """Parse a role colour from the API: ``null``, an RGB int, or a colour string."""

    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidEntry("Invalid role color", detail="color must not be a boolean")
    if isinstance(value, int):
        if 0 <= value <= _MAX_COLOR:
            return value
        raise InvalidEntry("Invalid role color", detail=f"color {value} is outside 0..0xFFFFFF")
    if isinstance(value, str):
        try:
            return discord.Colour.from_str(value.strip()).value
        except ValueError as exc:
            raise InvalidEntry("Invalid role color", detail=f"unrecognised color {value!r}") from exc
    raise InvalidEntry("Invalid role color", detail=f"unsupported color type {type(value).__name__}")


def _role_body(body: object) -> Mapping[str, Any]:
    if body is None:
        return {}
    if not isinstance(body, Mapping):
        raise InvalidRequestShape(
            "Request body must be a JSON object", detail=f"got {type(body).__name__}"
        )
    return body


def _role_changes(body: Mapping[str, Any]) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    name = body.get("name")
    if name is not None:
        if not isinstance(name, str):
            raise InvalidEntry("Invalid role name", detail="name must be a string")
        changes["name"] = name
    if "color" in body:
        changes["color"] = parse_color(body["color"])
    if body.get("permissions") is not None:
        changes["permissions"] = parse_bitfield(body["permissions"], field="permissions")
    return changes


class GuildConsole:
    """Wires the snapshot source, directory and core rules into API operations."""

    def __init__(
        self,
        source: SnapshotSource,
        directory: Directory,
        *,
        allowed_guild_ids: Iterable[int | str] = (),
    ) -> None:
        self.source = source
        self.directory = directory
        self.reconciler = OverwriteReconciler(directory)
        self.allowed_guild_ids = frozenset(str(item) for item in allowed_guild_ids)

    def _is_allowed(self, guild_id: str) -> bool:
        return not self.allowed_guild_ids or guild_id in self.allowed_guild_ids

    def _guild_id(self, guild_id: object) -> str:
        normalized = normalize_snowflake(guild_id)
        if normalized is None or not self._is_allowed(normalized):
            raise GuildNotFound()
        set_guild_context(normalized)
        return normalized

    async def list_guilds(self) -> List[Dict[str, str]]:
        summaries = [item for item in await self.source.guilds() if self._is_allowed(item.id)]
        summaries.sort(key=lambda item: (item.name.lower(), item.id))
        return [item.to_payload() for item in summaries]

    async def guild_detail(self, guild_id: object) -> Dict[str, Any]:
        snapshot = await self.source.snapshot(self._guild_id(guild_id))
        view = project_guild(snapshot)
        log.debug(
            "guild projected",
            extra={"categories": len(view.channels), "roles": len(view.roles)},
        )
        return view.to_payload()

    def permission_flags(self) -> Dict[str, str]:
        return permission_flags_payload()

    async def create_role(self, guild_id: object, body: object) -> Dict[str, Any]:
        gid = self._guild_id(guild_id)
        changes = _role_changes(_role_body(body))
        role = await self.directory.create_role(
            gid,
            name=changes.get("name"),
            color=changes.get("color"),
            permissions=changes.get("permissions"),
        )
        return role_payload(role)

    async def reorder_roles(self, guild_id: object, body: object) -> Dict[str, Any]:
        gid = self._guild_id(guild_id)
        positions = validate_reorder(body)
        await self.directory.reorder_roles(gid, positions)
        return {"success": True, "message": "Roles reordered successfully."}

    async def edit_role(self, guild_id: object, role_id: object, body: object) -> Dict[str, Any]:
        gid = self._guild_id(guild_id)
        changes = _role_changes(_role_body(body))
        role = await self.directory.edit_role(gid, str(role_id), changes)
        return role_payload(role)

    async def delete_role(self, guild_id: object, role_id: object) -> None:
        gid = self._guild_id(guild_id)
        await self.directory.delete_role(gid, str(role_id))

    async def upsert_overwrite(
        self, guild_id: object, channel_id: object, role_id: object, body: object
    ) -> Dict[str, Any]:
        gid = self._guild_id(guild_id)
        if not isinstance(body, Mapping):
            raise InvalidRequestShape(
                "Request body must be a JSON object with 'allow' and 'deny'",
                detail=f"got {type(body).__name__}",
            )
        missing = [key for key in ("allow", "deny") if key not in body]
        if missing:
            raise InvalidBitfield(detail=f"missing {' and '.join(missing)}")
        await self.reconciler.upsert(gid, channel_id, role_id, body["allow"], body["deny"])
        return {"success": True}

    async def delete_overwrite(self, guild_id: object, channel_id: object, role_id: object) -> None:
        gid = self._guild_id(guild_id)
        await self.reconciler.remove(gid, channel_id, role_id)
