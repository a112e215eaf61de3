"""Public logging helpers for the shared runtime package."""

from __future__ import annotations

from shared.logging.config import ACCESS_LOGGER, setup_logging
from shared.logging.structured import (
    JsonFormatter,
    get_guild_context,
    get_trace_id,
    set_guild_context,
    set_trace_id,
)

__all__ = [
    "ACCESS_LOGGER",
    "JsonFormatter",
    "get_guild_context",
    "get_trace_id",
    "set_guild_context",
    "set_trace_id",
    "setup_logging",
]
