"""Application runtime scaffolding: aiohttp app factory and process container."""

from __future__ import annotations

import logging
import math
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import discord
from aiohttp import web

from shared import health as healthmod
from shared.config import (
    get_bot_name,
    get_bot_version,
    get_env_name,
    get_log_level,
    get_port,
    get_static_dir,
)
from shared.logging import get_trace_id, set_guild_context, set_trace_id, setup_logging
from modules.guilds.console import GuildConsole
from modules.guilds.routes import error_middleware, mount_guild_api

log = logging.getLogger("guildconsole.runtime")


def _mount_static(app: web.Application, static_dir: Optional[str]) -> Optional[Path]:
    """Serve ``static_dir`` under ``/static`` and return its ``index.html`` if any."""

    if not static_dir:
        return None
    root = Path(static_dir)
    if not root.is_dir():
        log.info("static directory missing; client not served", extra={"static_dir": str(root)})
        return None
    app.router.add_static("/static", root, name="static")
    index = root / "index.html"
    return index if index.is_file() else None


async def create_app(
    *,
    console: GuildConsole,
    runtime: "Runtime | None" = None,
    static_dir: Optional[str] = None,
) -> web.Application:
    """Create and configure the aiohttp application used by the runtime."""

    static_fields = {"env": get_env_name(), "bot": get_bot_name()}
    access_logger = setup_logging(level=get_log_level(), static_fields=static_fields)

    healthmod.set_component("runtime", True)

    @web.middleware
    async def tracing_middleware(
        request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
    ) -> web.StreamResponse:
        trace = set_trace_id(request.headers.get("X-Trace-Id") or None)
        set_guild_context(request.match_info.get("guild_id"))
        started = time.perf_counter()
        status = 500
        try:
            response = await handler(request)
            status = getattr(response, "status", status)
            response.headers["X-Trace-Id"] = trace
            return response
        except web.HTTPException as exc:
            status = exc.status
            raise
        finally:
            duration_ms = int((time.perf_counter() - started) * 1000)
            access_logger.info(
                "http_request",
                extra={
                    "trace": trace,
                    "path": request.path,
                    "method": request.method,
                    "status": status,
                    "ms": duration_ms,
                },
            )

    app = web.Application(middlewares=[tracing_middleware, error_middleware])

    mount_guild_api(app, console)
    index_path = _mount_static(app, static_dir if static_dir is not None else get_static_dir())

    async def root(_: web.Request) -> web.StreamResponse:
        if index_path is not None:
            return web.FileResponse(index_path)
        payload = {
            "ok": True,
            "bot": get_bot_name(),
            "env": get_env_name(),
            "version": get_bot_version(),
            "trace": get_trace_id(),
        }
        return web.json_response(payload)

    async def ready(_: web.Request) -> web.Response:
        components = healthmod.components_snapshot()
        ok = healthmod.overall_ready()
        return web.json_response({"ok": ok, "components": components}, status=200 if ok else 503)

    async def healthz(_: web.Request) -> web.Response:
        if runtime is None:
            payload: dict[str, Any] = {
                "ok": True,
                "bot": get_bot_name(),
                "env": get_env_name(),
                "version": get_bot_version(),
            }
        else:
            payload = runtime.health_payload()
        payload["endpoint"] = "healthz"
        return web.json_response(payload, status=200 if payload["ok"] else 503)

    app.router.add_get("/", root)
    app.router.add_get("/ready", ready)
    app.router.add_get("/healthz", healthz)

    return app


class Runtime:
    """Container object that wires the Discord client, the console and the web server."""

    def __init__(self, client: discord.Client, console: GuildConsole) -> None:
        self.client = client
        self.console = console
        self._web_app: Optional[web.Application] = None
        self._web_runner: Optional[web.AppRunner] = None
        self._web_site: Optional[web.TCPSite] = None

    def health_payload(self) -> dict[str, Any]:
        connected = bool(self.client.is_ready()) and not self.client.is_closed()
        latency = getattr(self.client, "latency", None)
        try:
            latency_ms = None if latency is None else round(float(latency) * 1000, 1)
        except (TypeError, ValueError):
            latency_ms = None
        if latency_ms is not None and math.isnan(latency_ms):  # before the first heartbeat
            latency_ms = None
        return {
            "ok": connected,
            "bot": get_bot_name(),
            "env": get_env_name(),
            "version": get_bot_version(),
            "connected": connected,
            "guilds": len(self.client.guilds) if connected else 0,
            "latency_ms": latency_ms,
        }

    async def start_webserver(self, *, port: Optional[int] = None) -> None:
        if self._web_site is not None:
            return
        port = port if port is not None else get_port()

        app = await create_app(console=self.console, runtime=self)
        self._web_app = app
        self._web_runner = web.AppRunner(app)
        await self._web_runner.setup()
        self._web_site = web.TCPSite(self._web_runner, host="0.0.0.0", port=port)
        await self._web_site.start()
        log.info("web server listening", extra={"port": port})

    async def shutdown_webserver(self) -> None:
        site, runner = self._web_site, self._web_runner
        self._web_site = None
        self._web_runner = None
        self._web_app = None
        if site is not None:
            await site.stop()
        if runner is not None:
            await runner.cleanup()

    async def start(self, token: str) -> None:
        await self.start_webserver()
        await self.client.start(token)

    async def close(self) -> None:
        await self.shutdown_webserver()
        if not self.client.is_closed():
            await self.client.close()
        healthmod.set_component("discord", False)
