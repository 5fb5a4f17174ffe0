"""Number, time and progress-bar formatting for usage embeds."""

from dataclasses import dataclass
from datetime import datetime

from .config import (
    BURN_RATE_HIGH,
    BURN_RATE_MODERATE,
    COLOR_HIGH,
    COLOR_MODERATE,
    COLOR_NORMAL,
    PROGRESS_BAR_WIDTH,
)


@dataclass(frozen=True)
class BurnRateStatus:
    emoji: str
    status: str
    color: int


def format_number(num: float) -> str:
    """Compact count: 1.2M, 45.3k, 812."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    elif num >= 1_000:
        return f"{num / 1_000:.1f}k"
    return f"{num:.0f}"


def format_tokens_with_units(tokens: float) -> str:
    """Token count with two-decimal millions: 1.25M, 45.3k, 812."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.2f}M"
    elif tokens >= 1_000:
        return f"{tokens / 1_000:.1f}k"
    return f"{tokens:.0f}"


def format_time(minutes: float) -> str:
    """Minutes as `Xh Ym`, or `Ym` under an hour."""
    total = int(minutes)
    hours, mins = divmod(total, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_elapsed(start: datetime, now: datetime) -> str:
    """Elapsed time since start, never negative."""
    minutes = max((now - start).total_seconds(), 0) // 60
    return format_time(minutes)


def burn_rate_status(tokens_per_minute: float) -> BurnRateStatus:
    """Map a burn rate onto its severity band."""
    if tokens_per_minute < BURN_RATE_MODERATE:
        return BurnRateStatus("✅", "NORMAL", COLOR_NORMAL)
    elif tokens_per_minute < BURN_RATE_HIGH:
        return BurnRateStatus("⚠️", "MODERATE", COLOR_MODERATE)
    return BurnRateStatus("🔥", "HIGH", COLOR_HIGH)


def progress_bar(fraction: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Fixed-width bar with percentage, e.g. `[██░░…] 16.7%`.

    The fill is capped at the bar width; the percentage is shown uncapped so
    projections past the limit stay visible.
    """
    percentage = max(fraction, 0) * 100
    filled = int(min(percentage, 100) / 100 * width)
    bar = "█" * filled + "░" * (width - filled)
    return f"[{bar}] {percentage:.1f}%"
