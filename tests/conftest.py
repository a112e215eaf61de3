"""Pytest configuration for shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import pytest


def _ensure_project_root_on_path(source_file: Path) -> None:
    """Add the repository root to ``sys.path`` when running from subpackages."""

    for candidate in [source_file.parent, *source_file.parents]:
        shared_dir = candidate / "shared"
        if shared_dir.is_dir():
            project_root = str(candidate)
            if project_root not in sys.path:
                sys.path.insert(0, project_root)
            break


_ensure_project_root_on_path(Path(__file__).resolve())

from shared.testing.environment import apply_required_test_environment

apply_required_test_environment()

from shared.errors import ChannelNotFound, GuildNotFound, RoleNotFound  # noqa: E402
from modules.guilds.snapshot import (  # noqa: E402
    GuildSnapshot,
    GuildSummary,
    RoleRecord,
)


class FakeDirectory:
    """In-memory stand-in for the Discord directory and snapshot source.

    Every call is appended to ``calls`` so tests can assert that invalid
    requests never reach the directory.
    """

    def __init__(self, snapshots: Sequence[GuildSnapshot] = ()) -> None:
        self.snapshots = {item.guild_id: item for item in snapshots}
        self.channels: dict[str, set[str]] = {
            item.guild_id: {channel.id for channel in item.channels} for item in snapshots
        }
        self.roles: dict[str, dict[str, RoleRecord]] = {
            item.guild_id: {role.id: role for role in item.roles} for item in snapshots
        }
        self.overwrites: dict[tuple[str, str], tuple[int, int]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_with: Optional[Exception] = None
        self._next_id = 9000

    def _guild(self, guild_id: str) -> None:
        if guild_id not in self.snapshots:
            raise GuildNotFound()
        if self.fail_with is not None:
            raise self.fail_with

    def _role(self, guild_id: str, role_id: str) -> RoleRecord:
        role = self.roles[guild_id].get(role_id)
        if role is None:
            raise RoleNotFound()
        return role

    def _channel(self, guild_id: str, channel_id: str) -> None:
        if channel_id not in self.channels[guild_id]:
            raise ChannelNotFound()

    async def guilds(self) -> Sequence[GuildSummary]:
        self.calls.append(("guilds",))
        return [GuildSummary(id=item.guild_id, name=item.name) for item in self.snapshots.values()]

    async def snapshot(self, guild_id: str) -> GuildSnapshot:
        self.calls.append(("snapshot", guild_id))
        self._guild(guild_id)
        return self.snapshots[guild_id]

    async def create_role(
        self,
        guild_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[int] = None,
        permissions: Optional[int] = None,
    ) -> RoleRecord:
        self.calls.append(("create_role", guild_id, name, color, permissions))
        self._guild(guild_id)
        self._next_id += 1
        role = RoleRecord(
            id=str(self._next_id),
            name=name or "new role",
            color=color,
            permissions=permissions or 0,
            position=1,
        )
        self.roles[guild_id][role.id] = role
        return role

    async def edit_role(self, guild_id: str, role_id: str, changes: Mapping[str, Any]) -> RoleRecord:
        self.calls.append(("edit_role", guild_id, role_id, dict(changes)))
        self._guild(guild_id)
        role = self._role(guild_id, role_id)
        updated = RoleRecord(
            id=role.id,
            name=changes.get("name", role.name),
            color=changes["color"] if "color" in changes else role.color,
            permissions=changes.get("permissions", role.permissions),
            position=role.position,
        )
        self.roles[guild_id][role_id] = updated
        return updated

    async def delete_role(self, guild_id: str, role_id: str) -> None:
        self.calls.append(("delete_role", guild_id, role_id))
        self._guild(guild_id)
        self._role(guild_id, role_id)
        del self.roles[guild_id][role_id]

    async def reorder_roles(self, guild_id: str, positions) -> None:
        self.calls.append(("reorder_roles", guild_id, tuple(positions)))
        self._guild(guild_id)

    async def set_role_overwrite(
        self, guild_id: str, channel_id: str, role_id: str, allow: int, deny: int
    ) -> None:
        self.calls.append(("set_role_overwrite", guild_id, channel_id, role_id, allow, deny))
        self._guild(guild_id)
        self._channel(guild_id, channel_id)
        self.overwrites[(channel_id, role_id)] = (allow, deny)

    async def clear_role_overwrite(self, guild_id: str, channel_id: str, role_id: str) -> None:
        self.calls.append(("clear_role_overwrite", guild_id, channel_id, role_id))
        self._guild(guild_id)
        self._channel(guild_id, channel_id)
        self.overwrites.pop((channel_id, role_id), None)


@pytest.fixture
def fake_directory_factory():
    """Return a callable building a :class:`FakeDirectory` from snapshots."""

    return FakeDirectory
