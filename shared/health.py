"""Readiness registry for the web runtime and the Discord gateway connection."""

from __future__ import annotations

import time
from typing import Dict, Mapping

__all__ = [
    "components_snapshot",
    "overall_ready",
    "reset",
    "set_component",
]

# "runtime" flips when the aiohttp app is built, "discord" tracks the gateway.
REQUIRED = ("runtime", "discord")

_state: Dict[str, tuple[bool, float]] = {}


def set_component(name: str, ok: bool) -> None:
    _state[name] = (bool(ok), time.time())


def components_snapshot() -> dict[str, Mapping[str, float | bool]]:
    """Return every known component, required ones included even before they report."""

    snapshot: dict[str, Mapping[str, float | bool]] = {
        name: {"ok": ok, "ts": ts} for name, (ok, ts) in _state.items()
    }
    for name in REQUIRED:
        snapshot.setdefault(name, {"ok": False, "ts": 0.0})
    return snapshot


def overall_ready() -> bool:
    return all(_state.get(name, (False, 0.0))[0] for name in REQUIRED)


def reset() -> None:
    _state.clear()
