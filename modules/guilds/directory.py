"""Directory service contract and its discord.py implementation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Protocol, Sequence

import discord

from shared.errors import (
    ChannelNotFound,
    GuildNotFound,
    NotFound,
    OverwriteWriteRejected,
    RoleNotFound,
    SnapshotUnavailable,
    UpstreamRejected,
)
from shared.redaction import sanitize_text

from .role_order import RolePosition, normalize_snowflake
from .snapshot import GuildSnapshot, GuildSummary, RoleRecord, role_from_discord, snapshot_from_guild

__all__ = ["Directory", "DiscordDirectory"]

log = logging.getLogger("guildconsole.directory")

# Discord's overwrite target type for roles (members are 1).
_ROLE_OVERWRITE_TYPE = 0


class Directory(Protocol):
    """Mutation contract of the external directory service."""

    async def create_role(
        self,
        guild_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[int] = None,
        permissions: Optional[int] = None,
    ) -> RoleRecord:
        ...

    async def edit_role(self, guild_id: str, role_id: str, changes: Mapping[str, Any]) -> RoleRecord:
        ...

    async def delete_role(self, guild_id: str, role_id: str) -> None:
        ...

    async def reorder_roles(self, guild_id: str, positions: Sequence[RolePosition]) -> None:
        ...

    async def set_role_overwrite(
        self, guild_id: str, channel_id: str, role_id: str, allow: int, deny: int
    ) -> None:
        ...

    async def clear_role_overwrite(self, guild_id: str, channel_id: str, role_id: str) -> None:
        ...


def _upstream_text(exc: discord.HTTPException) -> str:
    text = str(getattr(exc, "text", "") or "").strip()
    if not text:
        text = str(exc).strip() or exc.__class__.__name__
    return " ".join(text.split())


@contextmanager
def _translate(
    action: str,
    *,
    not_found: type[NotFound] | None = None,
    rejected: type[UpstreamRejected] = UpstreamRejected,
) -> Iterator[None]:
    """Map discord.py HTTP failures onto the console's error taxonomy."""

    try:
        yield
    except discord.NotFound as exc:
        if not_found is None:
            raise rejected(detail=_upstream_text(exc)) from exc
        raise not_found(detail=_upstream_text(exc)) from exc
    except discord.HTTPException as exc:
        reason = _upstream_text(exc)
        log.warning(
            "directory rejected %s",
            action,
            extra={"status": getattr(exc, "status", None), "error_reason": sanitize_text(reason)},
        )
        raise rejected(detail=reason) from exc


def _snowflake(value: object, error: type[NotFound]) -> int:
    text = normalize_snowflake(value)
    if text is None:
        raise error(detail=f"{value!r} is not a valid id")
    return int(text)


class DiscordDirectory:
    """Reads snapshots from the client cache and forwards writes to the Discord API."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    def _require_ready(self) -> None:
        if not self.client.is_ready():
            raise SnapshotUnavailable(detail="Discord client is not connected yet")

    # -- snapshot source -------------------------------------------------

    async def guilds(self) -> Sequence[GuildSummary]:
        self._require_ready()
        return [GuildSummary(id=str(guild.id), name=guild.name) for guild in self.client.guilds]

    async def snapshot(self, guild_id: str) -> GuildSnapshot:
        self._require_ready()
        guild = self.client.get_guild(_snowflake(guild_id, GuildNotFound))
        if guild is None:
            raise GuildNotFound()
        return snapshot_from_guild(guild)

    # -- point fetches ---------------------------------------------------

    async def _guild(self, guild_id: str) -> discord.Guild:
        snowflake = _snowflake(guild_id, GuildNotFound)
        guild = self.client.get_guild(snowflake)
        if guild is not None:
            return guild
        with _translate("fetch guild", not_found=GuildNotFound):
            return await self.client.fetch_guild(snowflake)

    async def _role(self, guild: discord.Guild, role_id: str) -> discord.Role:
        snowflake = _snowflake(role_id, RoleNotFound)
        role = guild.get_role(snowflake)
        if role is not None:
            return role
        with _translate("fetch roles", not_found=GuildNotFound):
            roles = await guild.fetch_roles()
        for candidate in roles:
            if candidate.id == snowflake:
                return candidate
        raise RoleNotFound()

    async def _channel(self, guild: discord.Guild, channel_id: str) -> Any:
        snowflake = _snowflake(channel_id, ChannelNotFound)
        channel = guild.get_channel(snowflake)
        if channel is None:
            with _translate("fetch channel", not_found=ChannelNotFound):
                channel = await self.client.fetch_channel(snowflake)
        if getattr(getattr(channel, "guild", None), "id", None) != guild.id:
            raise ChannelNotFound(detail=f"channel {channel_id} is not in guild {guild.id}")
        return channel

    # -- mutations -------------------------------------------------------

    async def create_role(
        self,
        guild_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[int] = None,
        permissions: Optional[int] = None,
    ) -> RoleRecord:
        guild = await self._guild(guild_id)
        kwargs: dict[str, Any] = {}
        if name is not None:
            kwargs["name"] = name
        if color is not None:
            kwargs["colour"] = discord.Colour(color)
        if permissions is not None:
            kwargs["permissions"] = discord.Permissions(permissions)
        with _translate("create role", not_found=GuildNotFound):
            role = await guild.create_role(**kwargs)
        log.info("role created", extra={"guild": str(guild.id), "role": str(role.id)})
        return role_from_discord(role)

    async def edit_role(self, guild_id: str, role_id: str, changes: Mapping[str, Any]) -> RoleRecord:
        guild = await self._guild(guild_id)
        role = await self._role(guild, role_id)
        kwargs: dict[str, Any] = {}
        if "name" in changes:
            kwargs["name"] = changes["name"]
        if "color" in changes:
            color = changes["color"]
            kwargs["colour"] = discord.Colour.default() if color is None else discord.Colour(color)
        if "permissions" in changes:
            kwargs["permissions"] = discord.Permissions(changes["permissions"])
        if not kwargs:
            return role_from_discord(role)
        with _translate("edit role", not_found=RoleNotFound):
            updated = await role.edit(**kwargs)
        log.info("role edited", extra={"guild": str(guild.id), "role": str(role.id)})
        return role_from_discord(updated or role)

    async def delete_role(self, guild_id: str, role_id: str) -> None:
        guild = await self._guild(guild_id)
        role = await self._role(guild, role_id)
        with _translate("delete role", not_found=RoleNotFound):
            await role.delete()
        log.info("role deleted", extra={"guild": str(guild.id), "role": str(role.id)})

    async def reorder_roles(self, guild_id: str, positions: Sequence[RolePosition]) -> None:
        guild = await self._guild(guild_id)
        mapping = {discord.Object(id=int(item.role_id)): item.position for item in positions}
        with _translate("reorder roles"):
            await guild.edit_role_positions(positions=mapping)
        log.info("roles reordered", extra={"guild": str(guild.id), "count": len(mapping)})

    async def set_role_overwrite(
        self, guild_id: str, channel_id: str, role_id: str, allow: int, deny: int
    ) -> None:
        guild = await self._guild(guild_id)
        channel = await self._channel(guild, channel_id)
        # Raw HTTP keeps bits discord.PermissionOverwrite does not know about.
        with _translate(
            "edit channel permissions",
            not_found=ChannelNotFound,
            rejected=OverwriteWriteRejected,
        ):
            await self.client.http.edit_channel_permissions(
                channel.id,
                int(role_id),
                str(allow),
                str(deny),
                _ROLE_OVERWRITE_TYPE,
            )

    async def clear_role_overwrite(self, guild_id: str, channel_id: str, role_id: str) -> None:
        guild = await self._guild(guild_id)
        channel = await self._channel(guild, channel_id)
        with _translate("delete channel permissions", rejected=OverwriteWriteRejected):
            try:
                await self.client.http.delete_channel_permissions(channel.id, int(role_id))
            except discord.NotFound:
                # The channel resolved above, so a 404 here means no overwrite existed.
                log.debug("overwrite already absent", extra={"channel": str(channel.id)})
