"""Error taxonomy shared by the guild console core and its HTTP surface."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ChannelNotFound",
    "GuildConsoleError",
    "GuildNotFound",
    "InvalidBitfield",
    "InvalidEntry",
    "InvalidInput",
    "InvalidRequestShape",
    "NotFound",
    "OverwriteWriteRejected",
    "RoleNotFound",
    "SnapshotUnavailable",
    "UpstreamRejected",
]


class GuildConsoleError(Exception):
    """Base class for every classified failure.

    ``kind`` is the stable machine-readable category, ``status`` the HTTP
    status the API answers with, ``message`` a human-readable summary and
    ``detail`` optional extra context (for upstream rejections, the directory
    service's own message verbatim).
    """

    kind = "error"
    status = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.detail:
            payload["details"] = self.detail
        return payload


class NotFound(GuildConsoleError):
    kind = "not_found"
    status = 404
    default_message = "Not found"


class GuildNotFound(NotFound):
    default_message = "Guild not found"


class ChannelNotFound(NotFound):
    default_message = "Channel not found"


class RoleNotFound(NotFound):
    default_message = "Role not found"


class InvalidInput(GuildConsoleError):
    kind = "invalid_input"
    status = 400
    default_message = "Invalid request"


class InvalidRequestShape(InvalidInput):
    default_message = "Request body must be an array of role positions."


class InvalidEntry(InvalidInput):
    default_message = "Invalid entry"


class InvalidBitfield(InvalidInput):
    default_message = "Permission bitfields must be non-negative integers"


class UpstreamRejected(GuildConsoleError):
    kind = "upstream_rejected"
    status = 500
    default_message = "Directory service rejected the request"


class OverwriteWriteRejected(UpstreamRejected):
    default_message = "Failed to update channel permissions"


class SnapshotUnavailable(GuildConsoleError):
    kind = "snapshot_unavailable"
    status = 503
    default_message = "Guild data is not available yet"
