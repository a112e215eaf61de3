"""JSON logging setup for the guild console process."""

from __future__ import annotations

import logging
from typing import Mapping

from .structured import JsonFormatter

__all__ = ["ACCESS_LOGGER", "setup_logging"]

ACCESS_LOGGER = "aiohttp.access"


def _json_stream_handler(static: Mapping[str, str]) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(static=static))
    return handler


def setup_logging(
    *,
    level: str | int = logging.INFO,
    static_fields: Mapping[str, str] | None = None,
) -> logging.Logger:
    """Route every logger through :class:`JsonFormatter` and return the access logger.

    Existing root stream handlers are reformatted rather than duplicated, so
    building the app twice in one process (tests) does not double the output.
    The access logger gets its own handler and does not propagate; each HTTP
    request therefore produces exactly one ``http_request`` line.
    """

    static = dict(static_fields or {})

    root = logging.getLogger()
    root.setLevel(level)
    streams = [item for item in root.handlers if isinstance(item, logging.StreamHandler)]
    for handler in streams:
        handler.setFormatter(JsonFormatter(static=static))
    if not streams:
        root.addHandler(_json_stream_handler(static))

    # discord.py is chatty at INFO during gateway reconnects
    logging.getLogger("discord").setLevel(max(root.level, logging.WARNING))

    access = logging.getLogger(ACCESS_LOGGER)
    access.propagate = False
    access.handlers.clear()
    access.addHandler(_json_stream_handler({**static, "logger": ACCESS_LOGGER}))
    access.setLevel(logging.INFO)
    return access
