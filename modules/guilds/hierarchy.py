"""Project a flat guild snapshot into the two-level category tree served to clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from shared.permissions import format_bitfield

from .snapshot import (
    ChannelKind,
    ChannelRecord,
    GuildSnapshot,
    OverwriteRecord,
    PrincipalType,
    RoleRecord,
    color_hex,
)

__all__ = [
    "UNCATEGORIZED_NAME",
    "CategoryNode",
    "ChannelNode",
    "GuildView",
    "OverwriteView",
    "RoleSummary",
    "project_guild",
]

UNCATEGORIZED_NAME = "No Category"


@dataclass(frozen=True, slots=True)
class OverwriteView:
    role_id: str
    allow: int
    deny: int

    def to_payload(self) -> dict[str, str]:
        return {
            "id": self.role_id,
            "type": PrincipalType.ROLE.value,
            "allow": format_bitfield(self.allow),
            "deny": format_bitfield(self.deny),
        }


@dataclass(frozen=True, slots=True)
class ChannelNode:
    id: str
    name: str
    type_label: str
    position: int
    overwrites: tuple[OverwriteView, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type_label,
            "position": self.position,
            "overwrites": [item.to_payload() for item in self.overwrites],
        }


@dataclass(frozen=True, slots=True)
class CategoryNode:
    """A real category, or the synthetic bucket when ``id`` is ``None``."""

    id: str | None
    name: str
    position: int | None
    overwrites: tuple[OverwriteView, ...]
    channels: tuple[ChannelNode, ...]

    @property
    def is_uncategorized(self) -> bool:
        return self.id is None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "overwrites": [item.to_payload() for item in self.overwrites],
            "channels": [channel.to_payload() for channel in self.channels],
        }


@dataclass(frozen=True, slots=True)
class RoleSummary:
    id: str
    name: str
    color: int | None
    position: int
    permissions: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": color_hex(self.color),
            "position": self.position,
            "permissions": format_bitfield(self.permissions),
        }


@dataclass(frozen=True, slots=True)
class GuildView:
    id: str
    name: str
    roles: tuple[RoleSummary, ...]
    channels: tuple[CategoryNode, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "roles": [role.to_payload() for role in self.roles],
            "channels": [node.to_payload() for node in self.channels],
        }


def _sibling_sort_key(channel: ChannelRecord) -> Tuple[int, str]:
    return channel.position, channel.id


def _role_sort_key(role: RoleRecord) -> Tuple[int, str]:
    # Senior roles first; identity breaks ties so input order never leaks through.
    return -role.position, role.id


def _overwrite_views(
    records: Iterable[OverwriteRecord],
    role_positions: Mapping[str, int],
) -> tuple[OverwriteView, ...]:
    role_scoped = [item for item in records if item.principal_type is PrincipalType.ROLE]

    def key(item: OverwriteRecord) -> Tuple[int, int, str]:
        position = role_positions.get(item.principal_id)
        if position is None:
            return 1, 0, item.principal_id
        return 0, -position, item.principal_id

    role_scoped.sort(key=key)
    return tuple(
        OverwriteView(role_id=item.principal_id, allow=item.allow, deny=item.deny)
        for item in role_scoped
    )


def _group_overwrites(records: Sequence[OverwriteRecord]) -> Dict[str, List[OverwriteRecord]]:
    grouped: Dict[str, List[OverwriteRecord]] = {}
    for record in records:
        grouped.setdefault(record.channel_id, []).append(record)
    return grouped


def project_guild(snapshot: GuildSnapshot) -> GuildView:
    """Return the client-ready tree for ``snapshot``.

    Categories are ordered by position, then id. Non-category channels are
    sorted once globally the same way and then partitioned into their
    category's bucket, so each bucket keeps the global relative order.
    Channels whose parent is missing or is not a category in this snapshot
    land in a trailing "No Category" node, which is omitted when empty.
    Roles are listed most senior first. Only role-scoped overwrites are
    attached to nodes.
    """

    roles = sorted(snapshot.roles, key=_role_sort_key)
    role_positions = {role.id: role.position for role in roles}
    overwrites_by_channel = _group_overwrites(snapshot.overwrites)

    categories = sorted(
        (item for item in snapshot.channels if item.kind is ChannelKind.CATEGORY),
        key=_sibling_sort_key,
    )
    others = sorted(
        (item for item in snapshot.channels if item.kind is not ChannelKind.CATEGORY),
        key=_sibling_sort_key,
    )

    buckets: Dict[str, List[ChannelNode]] = {category.id: [] for category in categories}
    uncategorized: List[ChannelNode] = []

    for channel in others:
        node = ChannelNode(
            id=channel.id,
            name=channel.name,
            type_label=channel.type_label,
            position=channel.position,
            overwrites=_overwrite_views(
                overwrites_by_channel.get(channel.id, ()), role_positions
            ),
        )
        bucket = buckets.get(channel.parent_id) if channel.parent_id is not None else None
        if bucket is None:
            uncategorized.append(node)
        else:
            bucket.append(node)

    nodes: List[CategoryNode] = [
        CategoryNode(
            id=category.id,
            name=category.name,
            position=category.position,
            overwrites=_overwrite_views(
                overwrites_by_channel.get(category.id, ()), role_positions
            ),
            channels=tuple(buckets[category.id]),
        )
        for category in categories
    ]
    if uncategorized:
        nodes.append(
            CategoryNode(
                id=None,
                name=UNCATEGORIZED_NAME,
                position=None,
                overwrites=(),
                channels=tuple(uncategorized),
            )
        )

    return GuildView(
        id=snapshot.guild_id,
        name=snapshot.name,
        roles=tuple(
            RoleSummary(
                id=role.id,
                name=role.name,
                color=role.color,
                position=role.position,
                permissions=role.permissions,
            )
            for role in roles
        ),
        channels=tuple(nodes),
    )
