"""Pytest configuration and fixtures."""

import os
import tempfile

# Keep test runs from writing logs into the project tree
os.environ.setdefault("CCUSAGE_MONITOR_LOG_DIR", tempfile.mkdtemp(prefix="ccusage-monitor-logs-"))

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, AsyncMock, patch

import pytest


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_scheduler():
    """Create a mock APScheduler whose add_job returns a fresh mock Job."""
    scheduler = Mock()
    scheduler.add_job = Mock(side_effect=lambda *args, **kwargs: Mock(id=kwargs.get("id")))
    return scheduler


@pytest.fixture
def mock_message():
    """Create a mock Discord message."""
    message = Mock()
    message.edit = AsyncMock()
    return message


@pytest.fixture
def mock_channel(mock_message):
    """Create a mock Discord text channel whose send returns mock_message."""
    channel = Mock()
    channel.send = AsyncMock(return_value=mock_message)
    return channel


def make_interaction(channel, channel_id: int = 111):
    """Mock Discord interaction bound to a channel."""
    interaction = Mock()
    interaction.channel_id = channel_id
    interaction.channel = channel
    interaction.user = "tester#0001"
    interaction.response = Mock(
        send_message=AsyncMock(),
        defer=AsyncMock(),
        is_done=Mock(return_value=False),
    )
    interaction.edit_original_response = AsyncMock()
    interaction.followup = Mock(send=AsyncMock())
    return interaction


@pytest.fixture
def mock_interaction(mock_channel):
    return make_interaction(mock_channel)


def make_block_data(
    now: datetime = None,
    total_tokens: int = 1_000_000,
    tokens_per_minute: float = 50_000,
    is_active: bool = True,
) -> dict:
    """ccusage JSON for a block that started 10 minutes ago and ends in 50."""
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(minutes=10)
    end = now + timedelta(minutes=50)
    return {
        "id": start.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
        "startTime": start.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "endTime": end.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "actualEndTime": None,
        "isActive": is_active,
        "isGap": False,
        "entries": 42,
        "tokenCounts": {
            "inputTokens": 200_000,
            "outputTokens": 300_000,
            "cacheCreationInputTokens": 100_000,
            "cacheReadInputTokens": 400_000,
        },
        "totalTokens": total_tokens,
        "costUSD": 12.345,
        "models": ["claude-sonnet-4-20250514", "claude-opus-4-20250514"],
        "burnRate": {
            "tokensPerMinute": tokens_per_minute,
            "tokensPerMinuteForIndicator": tokens_per_minute,
            "costPerHour": 7.5,
        },
        "projection": {
            "totalTokens": 6_000_000,
            "totalCost": 74.07,
            "remainingMinutes": 50,
        },
    }


@pytest.fixture
def block_data():
    return make_block_data()


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch('httpx.AsyncClient') as mock:
        client = AsyncMock()
        mock.return_value.__aenter__.return_value = client
        yield client
