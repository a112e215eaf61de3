import asyncio

from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from modules.guilds.console import GuildConsole
from modules.guilds.routes import error_middleware, mount_guild_api
from modules.guilds.snapshot import ChannelKind, ChannelRecord, GuildSnapshot, RoleRecord
from shared.errors import SnapshotUnavailable


def _build_app(fake) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    mount_guild_api(app, GuildConsole(fake, fake))
    return app


def _fake(factory):
    snapshot = GuildSnapshot(
        guild_id="1",
        name="Guild",
        roles=(RoleRecord(id="20", name="Mods", color=None, permissions=8, position=1),),
        channels=(
            ChannelRecord(id="100", name="Info", kind=ChannelKind.CATEGORY, position=0),
            ChannelRecord(id="101", name="lobby", kind=ChannelKind.OTHER, position=0, parent_id="7"),
        ),
    )
    return factory([snapshot])


def _run(fake, scenario) -> None:
    async def runner() -> None:
        async with TestServer(_build_app(fake)) as server:
            async with TestClient(server) as client:
                await scenario(client)

    asyncio.run(runner())


def test_read_routes(fake_directory_factory):
    fake = _fake(fake_directory_factory)

    async def scenario(client: TestClient) -> None:
        resp = await client.get("/api/guilds")
        assert resp.status == 200
        assert await resp.json() == [{"id": "1", "name": "Guild"}]

        resp = await client.get("/api/guilds/1")
        assert resp.status == 200
        detail = await resp.json()
        assert [node["id"] for node in detail["channels"]] == ["100", None]
        assert detail["channels"][1]["name"] == "No Category"
        assert detail["roles"][0]["permissions"] == "8"

        resp = await client.get("/api/permissions")
        assert resp.status == 200
        assert (await resp.json())["view_channel"] == "1024"

    _run(fake, scenario)


def test_role_routes(fake_directory_factory):
    fake = _fake(fake_directory_factory)

    async def scenario(client: TestClient) -> None:
        resp = await client.post("/api/guilds/1/roles", json={"name": "New", "permissions": "0"})
        assert resp.status == 201
        created = await resp.json()
        assert created["name"] == "New"

        resp = await client.patch(
            f"/api/guilds/1/roles/{created['id']}", json={"name": "Renamed"}
        )
        assert resp.status == 200
        assert (await resp.json())["name"] == "Renamed"

        resp = await client.patch(
            "/api/guilds/1/roles", json=[{"role": created["id"], "position": 2}]
        )
        assert resp.status == 200
        assert await resp.json() == {"success": True, "message": "Roles reordered successfully."}

        resp = await client.delete(f"/api/guilds/1/roles/{created['id']}")
        assert resp.status == 204

        resp = await client.delete(f"/api/guilds/1/roles/{created['id']}")
        assert resp.status == 404
        assert (await resp.json())["kind"] == "not_found"

    _run(fake, scenario)


def test_overwrite_routes(fake_directory_factory):
    fake = _fake(fake_directory_factory)
    path = "/api/guilds/1/channels/101/overwrites/20"

    async def scenario(client: TestClient) -> None:
        resp = await client.put(path, json={"allow": "16", "deny": "0"})
        assert resp.status == 200
        assert await resp.json() == {"success": True}
        assert fake.overwrites[("101", "20")] == (16, 0)

        for _ in range(2):
            resp = await client.delete(path)
            assert resp.status == 204

        resp = await client.put(
            "/api/guilds/1/channels/555/overwrites/20", json={"allow": "0", "deny": "0"}
        )
        assert resp.status == 404
        assert (await resp.json())["error"] == "Channel not found"

        resp = await client.put(path, json={"allow": "-1", "deny": "0"})
        assert resp.status == 400
        assert (await resp.json())["kind"] == "invalid_input"

        resp = await client.put(path)
        assert resp.status == 400
        resp = await client.put(path, json={"deny": "8"})
        assert resp.status == 400
        assert "allow" in (await resp.json())["details"]
        assert fake.overwrites == {}

    _run(fake, scenario)


def test_invalid_bodies_return_400(fake_directory_factory):
    fake = _fake(fake_directory_factory)

    async def scenario(client: TestClient) -> None:
        resp = await client.patch(
            "/api/guilds/1/roles",
            data="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "Request body must be valid JSON"

        resp = await client.patch("/api/guilds/1/roles", json={"role": "20", "position": 1})
        assert resp.status == 400
        assert (await resp.json())["error"] == "Request body must be an array of role positions."

        resp = await client.patch("/api/guilds/1/roles", json=[{"role": "20", "position": "abc"}])
        assert resp.status == 400
        payload = await resp.json()
        assert payload["error"] == "Invalid role position entry"
        assert "details" in payload

    _run(fake, scenario)
    assert not [call for call in fake.calls if call[0] == "reorder_roles"]


def test_unknown_guild_returns_404(fake_directory_factory):
    fake = _fake(fake_directory_factory)

    async def scenario(client: TestClient) -> None:
        resp = await client.get("/api/guilds/999")
        assert resp.status == 404
        assert await resp.json() == {"error": "Guild not found", "kind": "not_found"}

    _run(fake, scenario)


def test_classified_failures_map_to_status(fake_directory_factory):
    fake = _fake(fake_directory_factory)

    async def scenario(client: TestClient) -> None:
        fake.fail_with = SnapshotUnavailable()
        resp = await client.get("/api/guilds/1")
        assert resp.status == 503
        assert (await resp.json())["kind"] == "snapshot_unavailable"

        fake.fail_with = RuntimeError("boom")
        resp = await client.get("/api/guilds/1")
        assert resp.status == 500
        assert await resp.json() == {"error": "Internal server error", "kind": "internal"}

    _run(fake, scenario)
