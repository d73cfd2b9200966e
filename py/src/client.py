# A bot client that keeps a dice tray for every guild and private channel.
import logging
import os

import cmds
import discord
from config import *
from discord.ext import commands
from tray import TrayRack
from utils import *

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


# Bot client holding a pool of workers for running commands and the roll trays.
class DiceTrayClient(commands.Bot):
    def __init__(self, cogs):
        commands.Bot.__init__(
            self,
            command_prefix=commands.when_mentioned_or(get_summon_prefix()),
            strip_after_prefix=True,
            intents=get_intents(),
            case_insensitive=True,
        )
        self.description = BOT_DESCRIPTION
        self.startup_cogs = cogs

        self.executor = cmds.PebbleExecutor(MAX_COMMAND_WORKERS, COMMAND_TIMEOUT)
        self.rack = TrayRack(TRAY_CAPACITY)

    def get_executor(self) -> cmds.PebbleExecutor:
        return self.executor

    def get_rack(self) -> TrayRack:
        return self.rack

    async def setup_hook(self) -> None:
        await super().setup_hook()
        for cog in self.startup_cogs:
            await self.add_cog(cog(self))
        log.info("Commands in tree:")
        for cmd in self.tree.walk_commands():
            log.info(f"{cmd.name}")

        TEST_GUILD_ID = os.getenv("TEST_GUILD_ID")
        if TEST_GUILD_ID:
            log.info(
                f"Got test guild id: {TEST_GUILD_ID}; will sync app commands to test guild"
            )
            test_guild = discord.Object(id=int(TEST_GUILD_ID))
            self.tree.copy_global_to(guild=test_guild)
            await self.tree.sync(guild=test_guild)
        else:
            log.warning(
                f"No test guild id; only syncing tree to global. May take time for commands to appear."
            )
            await self.tree.sync()

    # Clean up executor workers once the connection closes.
    async def close(self) -> None:
        await super().close()
        self.executor.shutdown(False)

    async def on_ready(self):
        log.info(
            f"{self.user} is now connected to Discord in guilds:"
            + f"{[(g.name, g.id) for g in self.guilds]}"
        )

    async def on_command_error(self, ctx: commands.Context, exception, /) -> None:
        if ignorable_check_failure(exception):
            return
        return await super().on_command_error(ctx, exception)
