"""Per-channel edit pacing.

Keeps the last edit attempt per channel and tells the tick whether it may
touch Discord yet. Advisory only: it never sleeps, it just skips ticks.
"""

import time
from typing import Callable

from logger import logger
from .config import MIN_SPACING_MS, RATE_LIMIT_BACKOFF_MS, SCHEDULER_SLACK_MS


class RateGovernor:
    """Enforces MIN_SPACING_MS between edits on a channel.

    Usage:
        if governor.should_skip(channel_id):
            return
        governor.record(channel_id)
        try:
            await message.edit(embed=embed)
        except discord.RateLimited:
            governor.back_off(channel_id)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize governor.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._last_edit: dict[int, float] = {}  # channel_id -> clock seconds

    def should_skip(self, channel_id: int) -> bool:
        """True when the channel was edited less than MIN_SPACING_MS ago."""
        last = self._last_edit.get(channel_id)
        if last is None:
            return False

        elapsed_ms = (self._clock() - last) * 1000
        if elapsed_ms < MIN_SPACING_MS - SCHEDULER_SLACK_MS:
            logger.debug(
                f"Governor: skipping tick for channel {channel_id} "
                f"({elapsed_ms:.0f}ms since last edit, need {MIN_SPACING_MS}ms)"
            )
            return True
        return False

    def record(self, channel_id: int) -> None:
        """Store now as the channel's last edit attempt."""
        self._last_edit[channel_id] = self._clock()

    def back_off(self, channel_id: int) -> None:
        """Push the last edit RATE_LIMIT_BACKOFF_MS into the future after a 429."""
        last = self._last_edit.get(channel_id, self._clock())
        self._last_edit[channel_id] = last + RATE_LIMIT_BACKOFF_MS / 1000
        logger.warning(
            f"Governor: Discord rate limit on channel {channel_id}, "
            f"backing off {RATE_LIMIT_BACKOFF_MS // 1000}s"
        )

    def forget(self, channel_id: int) -> None:
        """Drop all pacing state for a channel."""
        self._last_edit.pop(channel_id, None)

    def clear(self) -> None:
        self._last_edit.clear()

    def last_edit(self, channel_id: int) -> float | None:
        return self._last_edit.get(channel_id)

    @staticmethod
    def clamp_period(seconds: float) -> float:
        """Raise a requested tick period to at least MIN_SPACING_MS."""
        return max(seconds, MIN_SPACING_MS / 1000)
