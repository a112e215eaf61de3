from __future__ import annotations

import asyncio
import logging
import os

import discord

from shared.config import (
    get_allowed_guild_ids,
    get_bot_name,
    get_discord_token,
    get_env_name,
    is_guild_allowed,
)
from shared import health as healthmod
from modules.common.runtime import Runtime
from modules.guilds.console import GuildConsole
from modules.guilds.directory import DiscordDirectory

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("guildconsole.app")

# Guild, role and channel caches come with the default intents; no member data is read.
INTENTS = discord.Intents.default()

client = discord.Client(intents=INTENTS)
directory = DiscordDirectory(client)
console = GuildConsole(directory, directory, allowed_guild_ids=get_allowed_guild_ids())
runtime = Runtime(client, console)


def _log_guild_allow_list() -> None:
    allowed = sorted(get_allowed_guild_ids())
    connected = [guild.id for guild in client.guilds]
    if not allowed:
        log.warning("Guild allow-list empty; every connected guild is exposed")
        return
    hidden = [guild_id for guild_id in connected if not is_guild_allowed(guild_id)]
    log.info(
        "Guild allow-list applied",
        extra={"allowed": ",".join(map(str, allowed)), "hidden": ",".join(map(str, hidden))},
    )


@client.event
async def on_ready():
    healthmod.set_component("discord", True)
    log.info(
        "Connected as %s | bot=%s | env=%s | guilds=%d",
        client.user,
        get_bot_name(),
        get_env_name(),
        len(client.guilds),
    )
    _log_guild_allow_list()


@client.event
async def on_resumed():
    healthmod.set_component("discord", True)


@client.event
async def on_disconnect():
    healthmod.set_component("discord", False)


@client.event
async def on_guild_join(guild: discord.Guild):
    log.info(
        "joined guild",
        extra={"guild": str(guild.id), "exposed": is_guild_allowed(guild.id)},
    )


async def main() -> None:
    token = get_discord_token()
    if not token:
        raise RuntimeError("DISCORD_TOKEN not set")
    try:
        await runtime.start(token)
    finally:
        await runtime.close()


if __name__ == "__main__":
    asyncio.run(main())
