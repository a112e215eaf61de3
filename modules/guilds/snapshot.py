"""Immutable guild snapshot model and the discord.py cache reader."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

import discord

__all__ = [
    "ChannelKind",
    "ChannelRecord",
    "GuildSnapshot",
    "GuildSummary",
    "OverwriteRecord",
    "PrincipalType",
    "RoleRecord",
    "SnapshotSource",
    "color_hex",
    "role_from_discord",
    "role_payload",
    "snapshot_from_guild",
]

log = logging.getLogger("guildconsole.snapshot")


class ChannelKind(enum.Enum):
    CATEGORY = "category"
    OTHER = "other"


class PrincipalType(enum.Enum):
    ROLE = "role"
    MEMBER = "member"


@dataclass(frozen=True, slots=True)
class GuildSummary:
    id: str
    name: str

    def to_payload(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True, slots=True)
class RoleRecord:
    id: str
    name: str
    color: int | None
    permissions: int
    position: int
    hoist: bool = False
    mentionable: bool = False
    managed: bool = False


@dataclass(frozen=True, slots=True)
class ChannelRecord:
    id: str
    name: str
    kind: ChannelKind
    position: int
    parent_id: str | None = None
    type_label: str = "text"


@dataclass(frozen=True, slots=True)
class OverwriteRecord:
    channel_id: str
    principal_type: PrincipalType
    principal_id: str
    allow: int
    deny: int


@dataclass(frozen=True, slots=True)
class GuildSnapshot:
    """Point-in-time, read-only view of one guild. Rebuilt on every read."""

    guild_id: str
    name: str
    roles: tuple[RoleRecord, ...] = ()
    channels: tuple[ChannelRecord, ...] = ()
    overwrites: tuple[OverwriteRecord, ...] = ()


class SnapshotSource(Protocol):
    """Read contract of the entity snapshot source."""

    async def guilds(self) -> Sequence[GuildSummary]:
        ...

    async def snapshot(self, guild_id: str) -> GuildSnapshot:
        ...


def color_hex(color: int | None) -> str | None:
    if color is None:
        return None
    return f"#{int(color) & 0xFFFFFF:06x}"


def role_payload(role: RoleRecord) -> dict[str, Any]:
    """Serialize a role for the API; the bitfield travels as a decimal string."""

    return {
        "id": role.id,
        "name": role.name,
        "color": color_hex(role.color),
        "position": role.position,
        "permissions": str(role.permissions),
        "hoist": role.hoist,
        "mentionable": role.mentionable,
        "managed": role.managed,
    }


def _safe_int(value: object, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _snowflake_text(value: object) -> str | None:
    text = str(value or "").strip()
    return text or None


def role_from_discord(role: Any) -> RoleRecord:
    colour = getattr(role, "colour", None)
    colour_value = _safe_int(getattr(colour, "value", colour), 0)
    permissions = getattr(role, "permissions", None)
    return RoleRecord(
        id=str(getattr(role, "id")),
        name=str(getattr(role, "name", "") or ""),
        color=colour_value or None,
        permissions=_safe_int(getattr(permissions, "value", permissions), 0),
        position=_safe_int(getattr(role, "position", 0)),
        hoist=bool(getattr(role, "hoist", False)),
        mentionable=bool(getattr(role, "mentionable", False)),
        managed=bool(getattr(role, "managed", False)),
    )


def _channel_kind(channel: Any) -> ChannelKind:
    if getattr(channel, "type", None) == discord.ChannelType.category or isinstance(
        channel, discord.CategoryChannel
    ):
        return ChannelKind.CATEGORY
    return ChannelKind.OTHER


def _type_label(channel: Any) -> str:
    channel_type = getattr(channel, "type", None)
    if isinstance(channel_type, discord.ChannelType):
        return channel_type.name
    return str(channel_type) if channel_type is not None else "unknown"


def _channel_from_discord(channel: Any) -> ChannelRecord:
    kind = _channel_kind(channel)
    parent_id = None
    if kind is ChannelKind.OTHER:
        parent_id = _snowflake_text(getattr(channel, "category_id", None))
    return ChannelRecord(
        id=str(getattr(channel, "id")),
        name=str(getattr(channel, "name", "") or ""),
        kind=kind,
        position=_safe_int(getattr(channel, "position", 0)),
        parent_id=parent_id,
        type_label=_type_label(channel),
    )


def _principal_type(target: Any) -> PrincipalType:
    if isinstance(target, discord.Role):
        return PrincipalType.ROLE
    if isinstance(target, discord.Object) and getattr(target, "type", None) is discord.Role:
        return PrincipalType.ROLE
    return PrincipalType.MEMBER


def _overwrites_from_discord(channel: Any) -> Iterable[OverwriteRecord]:
    overwrites = getattr(channel, "overwrites", None) or {}
    if not isinstance(overwrites, Mapping):
        return
    channel_id = str(getattr(channel, "id"))
    for target, overwrite in overwrites.items():
        allow, deny = overwrite.pair()
        yield OverwriteRecord(
            channel_id=channel_id,
            principal_type=_principal_type(target),
            principal_id=str(getattr(target, "id")),
            allow=int(allow.value),
            deny=int(deny.value),
        )


def snapshot_from_guild(guild: Any) -> GuildSnapshot:
    """Copy the parts of a ``discord.Guild`` the projection needs.

    Works on anything exposing ``id``, ``name``, ``roles`` and ``channels``
    with discord.py semantics, so tests can hand in stubs.
    """

    roles = tuple(role_from_discord(role) for role in getattr(guild, "roles", []) or [])
    channels: list[ChannelRecord] = []
    overwrites: list[OverwriteRecord] = []
    for channel in getattr(guild, "channels", []) or []:
        if isinstance(channel, discord.Thread):
            continue
        channels.append(_channel_from_discord(channel))
        overwrites.extend(_overwrites_from_discord(channel))
    log.debug(
        "snapshot built",
        extra={"roles": len(roles), "channels": len(channels), "overwrites": len(overwrites)},
    )
    return GuildSnapshot(
        guild_id=str(getattr(guild, "id")),
        name=str(getattr(guild, "name", "") or ""),
        roles=roles,
        channels=tuple(channels),
        overwrites=tuple(overwrites),
    )
