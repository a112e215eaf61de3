"""Runtime configuration helpers for the guild console."""

from __future__ import annotations

import logging
import os
from typing import Dict, Set

from config import runtime as _runtime
from shared.redaction import mask_secret, sanitize_text

__all__ = [
    "reload_config",
    "get_env_name",
    "get_bot_name",
    "get_bot_version",
    "get_port",
    "get_discord_token",
    "get_allowed_guild_ids",
    "is_guild_allowed",
    "get_static_dir",
    "get_log_level",
]

log = logging.getLogger("guildconsole.config")

# ===== Config Schema (authoritative) =====
_REQUIRED_ENV = ("DISCORD_TOKEN",)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or str(value).strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


for _name in _REQUIRED_ENV:
    _require_env(_name)

_MISSING_VALUE = "—"

_CONFIG: Dict[str, object] = {}

_SECRET_KEYS = {"DISCORD_TOKEN"}


def _redact_value(key: str, value: object) -> str:
    """Best-effort redaction for import-time logging."""

    key_upper = str(key).upper()

    if key_upper in _SECRET_KEYS or "TOKEN" in key_upper or key_upper.endswith("_SECRET"):
        if value in (None, "", [], (), {}):
            return _MISSING_VALUE
        stripped = str(value).strip()
        if not stripped:
            return _MISSING_VALUE
        return mask_secret(stripped)

    if value in (None, "", [], (), {}, set()):
        return _MISSING_VALUE

    if isinstance(value, (set, frozenset)):
        return ",".join(str(item) for item in sorted(value))

    return str(sanitize_text(value))


def _log_snapshot(snapshot: Dict[str, object]) -> None:
    redacted = {key: _redact_value(key, value) for key, value in snapshot.items()}
    log.info("config loaded", extra={"config": redacted})


def _load_config() -> Dict[str, object]:
    return {
        "PORT": _runtime.get_port(),
        "BOT_NAME": _runtime.get_bot_name(),
        "BOT_VERSION": _runtime.get_bot_version(),
        "DISCORD_TOKEN": os.getenv("DISCORD_TOKEN", ""),
        "ENV_NAME": _runtime.get_env_name(),
        "GUILD_IDS": set(_runtime.get_guild_ids()),
        "STATIC_DIR": _runtime.get_static_dir(),
        "LOG_LEVEL": _runtime.get_log_level(),
    }


def reload_config() -> Dict[str, object]:
    """Reload configuration from environment and return a snapshot."""

    for _name in _REQUIRED_ENV:
        _require_env(_name)

    snapshot = _load_config()

    global _CONFIG
    _CONFIG = snapshot
    _log_snapshot(snapshot)
    return dict(_CONFIG)


reload_config()


def get_env_name(default: str = "dev") -> str:
    value = _CONFIG.get("ENV_NAME")
    return str(value) if isinstance(value, str) and value else default


def get_bot_name(default: str = "Guild-Console") -> str:
    value = _CONFIG.get("BOT_NAME")
    return str(value) if isinstance(value, str) and value else default


def get_bot_version(default: str = "dev") -> str:
    value = _CONFIG.get("BOT_VERSION")
    return str(value) if isinstance(value, str) and value else default


def get_port(default: int = 10000) -> int:
    value = _CONFIG.get("PORT")
    return value if isinstance(value, int) else default


def get_discord_token() -> str:
    token = _CONFIG.get("DISCORD_TOKEN", "")
    return str(token)


def get_allowed_guild_ids() -> Set[int]:
    raw = _CONFIG.get("GUILD_IDS", set())
    if isinstance(raw, (set, frozenset, list, tuple)):
        result: Set[int] = set()
        for value in raw:
            try:
                result.add(int(value))
            except (TypeError, ValueError):
                continue
        return result
    return set()


def is_guild_allowed(guild_id: int | str) -> bool:
    allowed = get_allowed_guild_ids()
    if not allowed:
        return True
    try:
        value = int(guild_id)
    except (TypeError, ValueError):
        return False
    return value in allowed


def get_static_dir(default: str = "public") -> str:
    value = _CONFIG.get("STATIC_DIR")
    return str(value) if isinstance(value, str) and value else default


def get_log_level(default: str = "INFO") -> str:
    value = _CONFIG.get("LOG_LEVEL")
    return str(value) if isinstance(value, str) and value else default
