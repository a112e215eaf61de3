"""aiohttp routes exposing the guild console under ``/api``."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from shared.errors import GuildConsoleError, InvalidInput, InvalidRequestShape, NotFound
from shared.redaction import sanitize_text

from .console import GuildConsole

__all__ = ["API_PREFIX", "error_middleware", "mount_guild_api"]

log = logging.getLogger("guildconsole.web.routes")

API_PREFIX = "/api"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render classified failures as JSON with their mapped status code."""

    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except GuildConsoleError as exc:
        extra = {"path": request.path, "kind": exc.kind, "error_reason": sanitize_text(exc.detail)}
        if isinstance(exc, (NotFound, InvalidInput)):
            log.info("request refused: %s", exc.message, extra=extra)
        else:
            log.warning("request failed: %s", exc.message, extra=extra)
        return web.json_response(exc.to_payload(), status=exc.status)
    except Exception:
        log.exception("unhandled error", extra={"path": request.path, "method": request.method})
        return web.json_response(
            {"error": "Internal server error", "kind": "internal"}, status=500
        )


async def _read_json(request: web.Request) -> Any:
    if not request.can_read_body:
        return None
    text = await request.text()
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError as exc:
        raise InvalidRequestShape("Request body must be valid JSON", detail=str(exc)) from exc


def _no_content() -> web.Response:
    return web.Response(status=204)


def mount_guild_api(app: web.Application, console: GuildConsole) -> None:
    """Register the guild, role, overwrite and permission-flag routes."""

    async def list_guilds(_: web.Request) -> web.Response:
        return web.json_response(await console.list_guilds())

    async def guild_detail(request: web.Request) -> web.Response:
        payload = await console.guild_detail(request.match_info["guild_id"])
        return web.json_response(payload)

    async def permission_flags(_: web.Request) -> web.Response:
        return web.json_response(console.permission_flags())

    async def create_role(request: web.Request) -> web.Response:
        body = await _read_json(request)
        role = await console.create_role(request.match_info["guild_id"], body)
        return web.json_response(role, status=201)

    async def reorder_roles(request: web.Request) -> web.Response:
        body = await _read_json(request)
        result = await console.reorder_roles(request.match_info["guild_id"], body)
        return web.json_response(result)

    async def edit_role(request: web.Request) -> web.Response:
        body = await _read_json(request)
        role = await console.edit_role(
            request.match_info["guild_id"], request.match_info["role_id"], body
        )
        return web.json_response(role)

    async def delete_role(request: web.Request) -> web.Response:
        await console.delete_role(request.match_info["guild_id"], request.match_info["role_id"])
        return _no_content()

    async def upsert_overwrite(request: web.Request) -> web.Response:
        body = await _read_json(request)
        result = await console.upsert_overwrite(
            request.match_info["guild_id"],
            request.match_info["channel_id"],
            request.match_info["role_id"],
            body,
        )
        return web.json_response(result)

    async def delete_overwrite(request: web.Request) -> web.Response:
        await console.delete_overwrite(
            request.match_info["guild_id"],
            request.match_info["channel_id"],
            request.match_info["role_id"],
        )
        return _no_content()

    guild = f"{API_PREFIX}/guilds/{{guild_id}}"
    overwrite = f"{guild}/channels/{{channel_id}}/overwrites/{{role_id}}"

    app.router.add_get(f"{API_PREFIX}/guilds", list_guilds)
    app.router.add_get(guild, guild_detail)
    app.router.add_get(f"{API_PREFIX}/permissions", permission_flags)
    app.router.add_post(f"{guild}/roles", create_role)
    app.router.add_patch(f"{guild}/roles", reorder_roles)
    app.router.add_patch(f"{guild}/roles/{{role_id}}", edit_role)
    app.router.add_delete(f"{guild}/roles/{{role_id}}", delete_role)
    app.router.add_put(overwrite, upsert_overwrite)
    app.router.add_delete(overwrite, delete_overwrite)
    log.debug("guild api routes registered", extra={"prefix": API_PREFIX})
