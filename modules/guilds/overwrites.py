"""Create, update and delete a channel overwrite for one role."""

from __future__ import annotations

import logging
from typing import Protocol

from shared.errors import ChannelNotFound, InvalidEntry
from shared.permissions import parse_bitfield

from .role_order import normalize_snowflake

__all__ = ["OverwriteReconciler", "OverwriteWriter"]

log = logging.getLogger("guildconsole.overwrites")


class OverwriteWriter(Protocol):
    async def set_role_overwrite(
        self, guild_id: str, channel_id: str, role_id: str, allow: int, deny: int
    ) -> None:
        ...

    async def clear_role_overwrite(self, guild_id: str, channel_id: str, role_id: str) -> None:
        ...


class OverwriteReconciler:
    """Validate overwrite edits and hand them to the directory service.

    Allow and deny bits are not checked for overlap; the pair is forwarded
    exactly as received and the directory decides what overlapping bits mean.
    Failures are never retried.
    """

    def __init__(self, writer: OverwriteWriter) -> None:
        self.writer = writer

    @staticmethod
    def _ids(channel_id: object, role_id: object) -> tuple[str, str]:
        channel = normalize_snowflake(channel_id)
        if channel is None:
            raise ChannelNotFound(detail=f"unknown channel {channel_id!r}")
        role = normalize_snowflake(role_id)
        if role is None:
            raise InvalidEntry("Invalid role id", detail=f"{role_id!r} is not a role id")
        return channel, role

    async def upsert(
        self,
        guild_id: str,
        channel_id: object,
        role_id: object,
        allow: object,
        deny: object,
    ) -> bool:
        channel, role = self._ids(channel_id, role_id)
        allow_bits = parse_bitfield(allow, field="allow")
        deny_bits = parse_bitfield(deny, field="deny")
        await self.writer.set_role_overwrite(guild_id, channel, role, allow_bits, deny_bits)
        log.info(
            "overwrite saved",
            extra={
                "channel": channel,
                "role": role,
                "allow": str(allow_bits),
                "deny": str(deny_bits),
            },
        )
        return True

    async def remove(self, guild_id: str, channel_id: object, role_id: object) -> bool:
        channel, role = self._ids(channel_id, role_id)
        await self.writer.clear_role_overwrite(guild_id, channel, role)
        log.info("overwrite removed", extra={"channel": channel, "role": role})
        return True
