"""Tests for usage card rendering and formatting helpers."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from domains.usage_monitor.config import (
    COLOR_HIGH,
    COLOR_MODERATE,
    COLOR_NO_DATA,
    COLOR_NORMAL,
    PROGRESS_BAR_WIDTH,
    TOKEN_LIMIT,
)
from domains.usage_monitor.embeds import (
    render_error_embed,
    render_no_data_embed,
    render_usage_embed,
    session_progress,
    usage_progress,
)
from domains.usage_monitor.formatting import (
    burn_rate_status,
    format_number,
    format_time,
    format_tokens_with_units,
    progress_bar,
)
from domains.usage_monitor.types import BurnRate, Block
from conftest import make_block_data

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def block():
    return Block.from_dict(make_block_data(now=NOW))


def field_value(embed, name: str) -> str:
    for field in embed.fields:
        if field.name == name:
            return field.value
    raise AssertionError(f"No field named {name!r}")


class TestBurnRateColor:
    """Burn-rate bands drive the card colour."""

    @pytest.mark.parametrize("rate,color", [
        (0, COLOR_NORMAL),
        (99_999, COLOR_NORMAL),
        (100_000, COLOR_MODERATE),
        (199_999, COLOR_MODERATE),
        (200_000, COLOR_HIGH),
        (5_000_000, COLOR_HIGH),
    ])
    def test_band(self, block, rate, color):
        block = replace(block, burn_rate=BurnRate(tokens_per_minute=rate))
        assert render_usage_embed(block, NOW).color.value == color

    def test_status_labels(self):
        assert burn_rate_status(50_000).status == "NORMAL"
        assert burn_rate_status(150_000).status == "MODERATE"
        assert burn_rate_status(250_000).status == "HIGH"


class TestUsageEmbed:
    """Tests for render_usage_embed."""

    def test_happy_path_card(self, block):
        """Block 10 min into a 60 min window, 1M tokens at 50k/min."""
        embed = render_usage_embed(block, NOW)

        assert embed.color.value == COLOR_NORMAL
        assert embed.timestamp == NOW
        assert session_progress(block, NOW) == pytest.approx(1 / 6)
        assert usage_progress(block) == pytest.approx(1_000_000 / TOKEN_LIMIT)
        assert "16.7%" in field_value(embed, "💻 SESSION")
        assert "0.8%" in field_value(embed, "🔥 USAGE")
        assert "Elapsed: 10m" in field_value(embed, "💻 SESSION")
        assert "Remaining: 50m" in field_value(embed, "💻 SESSION")

    def test_field_layout(self, block):
        embed = render_usage_embed(block, NOW)

        names = [f.name for f in embed.fields]
        assert names == ["💻 SESSION", "🔥 USAGE", "📊 PROJECTION", "📈 TOKEN BREAKDOWN", "⚙️ MODELS"]
        assert [f.inline for f in embed.fields] == [False, False, False, True, True]
        assert "claude-opus-4-20250514" in field_value(embed, "⚙️ MODELS")
        assert "Cache Read: 400.0k" in field_value(embed, "📈 TOKEN BREAKDOWN")
        assert f"{TOKEN_LIMIT:,}" in field_value(embed, "🔥 USAGE")

    def test_is_pure_for_same_inputs(self, block):
        first = render_usage_embed(block, NOW).to_dict()
        second = render_usage_embed(block, NOW).to_dict()
        assert first == second

    def test_session_progress_clamped(self, block):
        assert session_progress(block, NOW - timedelta(hours=1)) == 0.0
        assert session_progress(block, NOW + timedelta(hours=2)) == 1.0
        embed = render_usage_embed(block, NOW + timedelta(hours=2))
        assert "100.0%" in field_value(embed, "💻 SESSION")

    def test_projection_over_limit(self, block):
        block = replace(block, projection=replace(block.projection, total_tokens=TOKEN_LIMIT * 2))
        embed = render_usage_embed(block, NOW)
        assert "EXCEEDS LIMIT" in field_value(embed, "📊 PROJECTION")

    def test_projection_within_limit(self, block):
        embed = render_usage_embed(block, NOW)
        assert "WITHIN LIMIT" in field_value(embed, "📊 PROJECTION")


class TestSentinelEmbeds:
    """No-data and error cards."""

    def test_no_data_is_grey(self):
        assert render_no_data_embed(NOW).color.value == COLOR_NO_DATA

    def test_error_is_red_with_message(self):
        embed = render_error_embed("boom", NOW)
        assert embed.color.value == 0xFF0000
        assert embed.description == "boom"

    def test_sentinel_colours_differ(self):
        assert render_no_data_embed(NOW).color != render_error_embed("x", NOW).color


class TestFormatting:
    """Formatting helpers."""

    def test_format_number(self):
        assert format_number(812) == "812"
        assert format_number(45_300) == "45.3k"
        assert format_number(1_250_000) == "1.2M"

    def test_format_tokens_with_units(self):
        assert format_tokens_with_units(1_250_000) == "1.25M"
        assert format_tokens_with_units(TOKEN_LIMIT) == "119.43M"

    def test_format_time(self):
        assert format_time(45) == "45m"
        assert format_time(125) == "2h 5m"

    def test_progress_bar_width(self):
        bar = progress_bar(0.5)
        cells = bar[bar.index("[") + 1:bar.index("]")]
        assert len(cells) == PROGRESS_BAR_WIDTH
        assert cells.count("█") == PROGRESS_BAR_WIDTH // 2
        assert bar.endswith("50.0%")

    def test_progress_bar_overflow_caps_fill(self):
        bar = progress_bar(2.0)
        assert "░" not in bar
        assert bar.endswith("200.0%")
