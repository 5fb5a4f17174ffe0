"""`/monitor` slash command group."""

import discord
from discord import app_commands

from logger import logger
from utils import sanitize_for_log
from .config import INTERVAL_DEFAULT_SECONDS, INTERVAL_MAX_SECONDS, INTERVAL_MIN_SECONDS
from .monitor import UsageMonitor

EXECUTION_ERROR = "An error occurred while executing the command."


class MonitorGroup(app_commands.Group):
    """Live Claude Code usage monitoring commands."""

    def __init__(self, monitor: UsageMonitor):
        super().__init__(name="monitor", description="Live Claude Code usage monitoring")
        self.monitor = monitor

    @app_commands.command(name="start", description="Start live monitoring in this channel")
    @app_commands.describe(interval="Refresh interval in seconds (60-3600, default 60)")
    async def start(
        self,
        interaction: discord.Interaction,
        interval: app_commands.Range[int, INTERVAL_MIN_SECONDS, INTERVAL_MAX_SECONDS] = INTERVAL_DEFAULT_SECONDS,
    ):
        logger.info(f"/monitor start (interval={interval}s) by {interaction.user} in {interaction.channel_id}")
        await self.monitor.start(interaction, interval)

    @app_commands.command(name="stop", description="Stop live monitoring in this channel")
    async def stop(self, interaction: discord.Interaction):
        logger.info(f"/monitor stop by {interaction.user} in {interaction.channel_id}")
        await self.monitor.stop(interaction)

    @app_commands.command(name="once", description="Show the current usage once")
    async def once(self, interaction: discord.Interaction):
        logger.info(f"/monitor once by {interaction.user} in {interaction.channel_id}")
        await self.monitor.once(interaction)

    async def on_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Reply ephemerally when a subcommand fails unexpectedly."""
        original = getattr(error, "original", error)
        logger.error(f"Command execution error: {sanitize_for_log(repr(original))}")

        try:
            if interaction.response.is_done():
                await interaction.followup.send(EXECUTION_ERROR, ephemeral=True)
            else:
                await interaction.response.send_message(EXECUTION_ERROR, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send execution error reply: {sanitize_for_log(str(e))}")
