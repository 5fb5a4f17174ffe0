"""ccusage Discord Monitor - Main Bot.

Posts live Claude Code token usage (read from the ccusage CLI) into Discord
channels through the /monitor slash commands, editing one message in place.
Self-telemetry runs alongside on the same scheduler.
"""

import asyncio
import atexit
import os
import signal
import sys
from typing import Optional

import discord
import psutil
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import (
    DISCORD_TOKEN,
    DISCORD_CLIENT_ID,
    DISCORD_GUILD_ID,
    SYSTEM_MONITOR_INTERVAL,
    missing_credentials,
)
from domains.usage_monitor import MonitorGroup, UsageMonitor
from jobs import register_system_monitor, stop_system_monitor, register_heap_probe

# Initialize scheduler (ticks, telemetry and heap probe all run here)
scheduler = AsyncIOScheduler()

# Live usage monitors, one per channel
usage_monitor = UsageMonitor(scheduler)

# Stop telemetry however the interpreter exits
atexit.register(stop_system_monitor)


class MonitorBot(commands.Bot):
    """Discord client carrying the /monitor command tree."""

    def __init__(self, application_id: int, guild_id: Optional[int] = None):
        intents = discord.Intents.default()
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=application_id,
        )
        self.guild_id = guild_id
        self._commands_synced = False

    async def setup_hook(self):
        self.tree.add_command(MonitorGroup(usage_monitor))

    async def on_ready(self):
        """Called when bot is connected and ready."""
        rss_mb = round(psutil.Process().memory_info().rss / 1024 / 1024)
        logger.info(f"Logged in as {self.user}")
        logger.info(f"Bot ready - PID: {os.getpid()}, Memory: {rss_mb}MB")

        # on_ready fires again after reconnects; register commands once
        if self._commands_synced:
            return

        logger.info("Registering slash commands...")
        try:
            if self.guild_id:
                guild = discord.Object(id=self.guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(f"Synced {len(synced)} slash commands to guild {self.guild_id}")
            else:
                synced = await self.tree.sync()
                logger.info(f"Synced {len(synced)} global slash commands")
            self._commands_synced = True
        except Exception as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_disconnect(self):
        logger.warning("Disconnected from Discord gateway")

    async def on_error(self, event, *args, **kwargs):
        """Handle errors."""
        logger.error(f"Bot error in {event}: {args}")


def shutdown_services() -> None:
    """Stop telemetry, cancel every monitor and stop the scheduler. Idempotent."""
    stop_system_monitor()
    usage_monitor.cleanup_all()
    if scheduler.running:
        scheduler.shutdown(wait=False)


async def shutdown(bot: commands.Bot, sig: signal.Signals) -> None:
    logger.info(f"Shutting down... ({sig.name})")
    shutdown_services()
    await bot.close()


def install_signal_handlers(bot: commands.Bot) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda s=sig: loop.create_task(shutdown(bot, s)))
        except NotImplementedError:
            pass  # Windows: Ctrl+C still unwinds asyncio.run


async def run_bot(bot: commands.Bot) -> int:
    """Start background jobs, connect to Discord and block until shutdown."""
    scheduler.start()
    register_system_monitor(scheduler, SYSTEM_MONITOR_INTERVAL)
    register_heap_probe(scheduler)
    install_signal_handlers(bot)

    logger.info("Attempting to login to Discord...")
    try:
        async with bot:
            await bot.start(DISCORD_TOKEN)
    except discord.LoginFailure as e:
        logger.error(f"Login failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Bot stopped unexpectedly: {e!r}")
        return 1
    finally:
        shutdown_services()

    return 0


def main() -> int:
    """Entry point."""
    missing = missing_credentials()
    if missing:
        for name in missing:
            logger.error(f"{name} not set")
        return 1

    try:
        application_id = int(DISCORD_CLIENT_ID)
        guild_id = int(DISCORD_GUILD_ID) if DISCORD_GUILD_ID else None
    except ValueError:
        logger.error("DISCORD_CLIENT_ID and DISCORD_GUILD_ID must be numeric IDs")
        return 1

    logger.info("Starting ccusage Discord monitor...")
    return asyncio.run(run_bot(MonitorBot(application_id, guild_id)))


if __name__ == "__main__":
    sys.exit(main())
