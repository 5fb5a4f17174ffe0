"""Registry of active usage monitors, keyed by channel."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from logger import logger
from .governor import RateGovernor


@dataclass
class MonitorSession:
    """State of one running monitor."""

    channel_id: int
    channel: Any  # discord.abc.Messageable the card is posted to
    period_seconds: float
    job: Any = None  # apscheduler Job driving the ticks
    message: Any = None  # last status discord.Message, set after first publish
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MonitorRegistry:
    """Channel -> running monitor. Owns every tick job.

    Runs on the bot's single event loop, so mutations need no locking.
    """

    def __init__(self, scheduler: BaseScheduler, governor: RateGovernor):
        self._scheduler = scheduler
        self._governor = governor
        self._sessions: dict[int, MonitorSession] = {}  # channel_id -> session

    def register(
        self,
        channel_id: int,
        channel: Any,
        period_seconds: float,
        tick: Callable[[int], Awaitable[None]],
    ) -> Optional[MonitorSession]:
        """Create a monitor for a channel.

        The tick job is added paused; call arm() once the first card is out
        so scheduled ticks are spaced from it.

        Returns:
            The new session, or None if the channel already has one
        """
        if channel_id in self._sessions:
            return None

        period_seconds = self._governor.clamp_period(period_seconds)
        session = MonitorSession(
            channel_id=channel_id,
            channel=channel,
            period_seconds=period_seconds,
        )
        session.job = self._scheduler.add_job(
            tick,
            'interval',
            args=[channel_id],
            seconds=period_seconds,
            id=f"usage_monitor_{channel_id}",
            next_run_time=None,  # paused until arm()
            coalesce=True,
            max_instances=1,
            misfire_grace_time=30,
        )
        self._sessions[channel_id] = session
        logger.info(f"Registered monitor for channel {channel_id} (every {period_seconds:.0f}s)")
        return session

    def arm(self, channel_id: int, session: MonitorSession) -> bool:
        """Start a registered session's ticks, first run one period from now.

        Returns:
            False if the session was stopped (or replaced) in the meantime
        """
        if self._sessions.get(channel_id) is not session:
            return False
        first_run = datetime.now(timezone.utc) + timedelta(seconds=session.period_seconds)
        session.job.modify(next_run_time=first_run)
        return True

    def unregister(self, channel_id: int) -> bool:
        """Cancel a channel's monitor and drop all its state.

        Returns:
            False if the channel had no monitor
        """
        session = self._sessions.pop(channel_id, None)
        if session is None:
            return False
        self._cancel(session)
        self._governor.forget(channel_id)
        ran_for = datetime.now(timezone.utc) - session.started_at
        logger.info(f"Unregistered monitor for channel {channel_id} (ran {ran_for.total_seconds():.0f}s)")
        return True

    def cleanup_all(self) -> None:
        """Cancel every monitor (shutdown path)."""
        count = len(self._sessions)
        for session in self._sessions.values():
            self._cancel(session)
        self._sessions.clear()
        self._governor.clear()
        logger.info(f"Cleaned up {count} monitors")

    def get(self, channel_id: int) -> Optional[MonitorSession]:
        return self._sessions.get(channel_id)

    def channels(self) -> list[int]:
        return list(self._sessions)

    def __contains__(self, channel_id: int) -> bool:
        return channel_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @staticmethod
    def _cancel(session: MonitorSession) -> None:
        if session.job is None:
            return
        try:
            session.job.remove()
        except JobLookupError:
            pass  # Already gone (scheduler shut down first)
        session.job = None
