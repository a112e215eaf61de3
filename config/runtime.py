from __future__ import annotations

# config/runtime.py
import os
from typing import List


def get_port(default: int = 10000) -> int:
    """
    Returns the port for the aiohttp API server.
    Hosting platforms provide $PORT; locally we fall back to 10000.
    """
    try:
        return int(os.getenv("PORT", str(default)))
    except ValueError:
        return default


def get_env_name(default: str = "dev") -> str:
    return os.getenv("ENV_NAME", default)


def get_bot_name(default: str = "Guild-Console") -> str:
    return os.getenv("BOT_NAME", default)


def get_bot_version(default: str = "dev") -> str:
    return os.getenv("BOT_VERSION", default)


def get_guild_ids() -> List[int]:
    """
    GUILD_IDS can be:
      - "123,456"
      - " [ 123  ,  456 ] "
      - "123"
    Non-ints are ignored.
    """
    raw = os.getenv("GUILD_IDS", "")
    # replace common separators with commas, then split
    for ch in ["[", "]", " ", ";", "|"]:
        raw = raw.replace(ch, ",")
    parts = [p for p in raw.split(",") if p.strip()]
    ids: List[int] = []
    for p in parts:
        try:
            ids.append(int(p))
        except ValueError:
            pass
    return ids


def get_static_dir(default: str = "public") -> str:
    """Directory holding the browser client; served at ``/`` when present."""

    return (os.getenv("STATIC_DIR") or default).strip() or default


def get_log_level(default: str = "INFO") -> str:
    return (os.getenv("LOG_LEVEL") or default).strip().upper() or default
