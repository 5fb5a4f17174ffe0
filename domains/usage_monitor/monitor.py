"""Live usage monitor - command handlers and the per-channel tick.

`start` registers a channel and posts the first card; the registry's interval
job then calls `tick()`, which samples ccusage and edits the same message in
place, paced by the RateGovernor.
"""

from typing import Optional

import discord
from apscheduler.schedulers.base import BaseScheduler

from logger import logger
from utils import sanitize_for_log
from .registry import MonitorRegistry, MonitorSession
from .config import (
    INTERVAL_DEFAULT_SECONDS,
    INTERVAL_MAX_SECONDS,
    INTERVAL_MIN_SECONDS,
    SAMPLER_TIMEOUT_SECONDS,
)
from .embeds import render_error_embed, render_no_data_embed, render_usage_embed
from .governor import RateGovernor
from .sampler import sample

ALREADY_RUNNING = "Monitoring is already running in this channel."
NOT_RUNNING = "Monitoring is not running in this channel."
DATA_FETCH_FAILED = "Failed to fetch usage data from ccusage."
RENDER_FAILED = "Failed to render usage data."
UPDATE_FAILED = "Failed to update the usage card."
STOPPED = "⏹️ Monitoring stopped."


def is_rate_limited(error: Exception) -> bool:
    """True if a Discord error is a 429."""
    if isinstance(error, discord.RateLimited):
        return True
    return isinstance(error, discord.HTTPException) and error.status == 429


class UsageMonitor:
    """Owns the monitor registry and runs ticks for every active channel."""

    def __init__(self, scheduler: BaseScheduler, governor: Optional[RateGovernor] = None):
        self.governor = governor or RateGovernor()
        self.registry = MonitorRegistry(scheduler, self.governor)

    # --- Commands ---

    async def start(self, interaction: discord.Interaction, interval: Optional[int] = None) -> None:
        """Begin monitoring the interaction's channel."""
        channel_id = interaction.channel_id
        interval = interval or INTERVAL_DEFAULT_SECONDS
        interval = min(max(interval, INTERVAL_MIN_SECONDS), INTERVAL_MAX_SECONDS)

        session = self.registry.register(channel_id, interaction.channel, interval, self.tick)
        if session is None:
            await interaction.response.send_message(
                embed=render_error_embed(ALREADY_RUNNING),
                ephemeral=True
            )
            return

        try:
            await interaction.response.send_message(
                f"📊 Monitoring started (refresh every {session.period_seconds:.0f}s)\n"
                f"Use `/monitor stop` to end it."
            )
        except Exception:
            self.registry.unregister(channel_id)
            raise

        await self.tick(channel_id)
        self.registry.arm(channel_id, session)

    async def stop(self, interaction: discord.Interaction) -> None:
        """Stop monitoring the interaction's channel."""
        if not self.registry.unregister(interaction.channel_id):
            await interaction.response.send_message(
                embed=render_error_embed(NOT_RUNNING),
                ephemeral=True
            )
            return

        await interaction.response.send_message(STOPPED)

    async def once(self, interaction: discord.Interaction) -> None:
        """Reply with a single usage card; the registry is not touched."""
        await interaction.response.defer()
        try:
            embed = await self.build_embed()
        except Exception as e:
            logger.error(f"Error getting usage data: {sanitize_for_log(str(e))}")
            embed = render_error_embed(RENDER_FAILED)
        await interaction.edit_original_response(embed=embed)

    def cleanup_all(self) -> None:
        self.registry.cleanup_all()

    # --- Tick ---

    async def tick(self, channel_id: int) -> None:
        """One timed update of a channel's card. Never raises."""
        session = self.registry.get(channel_id)
        if session is None:
            return

        if self.governor.should_skip(channel_id):
            return
        self.governor.record(channel_id)

        try:
            embed = await self.build_embed(timeout=session.period_seconds / 2)
        except Exception as e:
            logger.error(f"Error updating monitor for channel {channel_id}: {sanitize_for_log(str(e))}")
            embed = render_error_embed(RENDER_FAILED)

        # Stopped while sampling
        if self.registry.get(channel_id) is not session:
            logger.debug(f"Monitor for channel {channel_id} stopped mid-tick, dropping update")
            return

        await self._publish(session, embed)

    async def build_embed(self, timeout: Optional[float] = None) -> discord.Embed:
        """Sample ccusage and render the matching card."""
        data = await sample(timeout=timeout if timeout is not None else SAMPLER_TIMEOUT_SECONDS)
        if data is None:
            return render_error_embed(DATA_FETCH_FAILED)

        block = data.active_block()
        if block is None:
            return render_no_data_embed()

        return render_usage_embed(block)

    async def _publish(self, session: MonitorSession, embed: discord.Embed) -> None:
        channel_id = session.channel_id
        try:
            await self._send_or_edit(session, embed)
            return
        except Exception as e:
            logger.error(f"Failed to update monitor message in channel {channel_id}: {sanitize_for_log(str(e))}")
            if is_rate_limited(e):
                self.governor.back_off(channel_id)
                return

        try:
            await self._send_or_edit(session, render_error_embed(UPDATE_FAILED))
        except Exception as e:
            logger.error(f"Failed to post error card in channel {channel_id}: {sanitize_for_log(str(e))}")
            if is_rate_limited(e):
                self.governor.back_off(channel_id)

    @staticmethod
    async def _send_or_edit(session: MonitorSession, embed: discord.Embed) -> None:
        """Edit the session's message, or send a new one if there is none."""
        if session.message is not None:
            try:
                await session.message.edit(embed=embed)
                return
            except discord.NotFound:
                logger.warning(
                    f"Monitor message in channel {session.channel_id} was deleted, sending a new one"
                )
                session.message = None

        session.message = await session.channel.send(embed=embed)
