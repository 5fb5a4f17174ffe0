"""Discord embeds for the live usage card.

All functions are pure in their inputs: the only clock read is the optional
`now` argument, which defaults to the current UTC time.
"""

from datetime import datetime, timezone
from typing import Optional

import discord

from .config import COLOR_ERROR, COLOR_NO_DATA, TOKEN_LIMIT
from .formatting import (
    burn_rate_status,
    format_elapsed,
    format_number,
    format_time,
    format_tokens_with_units,
    progress_bar,
)
from .types import Block

TITLE = "🤖 CLAUDE CODE - LIVE TOKEN USAGE MONITOR"
FOOTER = "♻ Live updates • /monitor stop to end"
TIME_FORMAT = "%H:%M:%S UTC"


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def session_progress(block: Block, now: datetime) -> float:
    """Fraction of the block window elapsed, clamped to [0, 1]."""
    span = (block.end_time - block.start_time).total_seconds()
    if span <= 0:
        return 1.0 if now >= block.end_time else 0.0
    elapsed = (now - block.start_time).total_seconds()
    return min(max(elapsed / span, 0.0), 1.0)


def usage_progress(block: Block) -> float:
    """Fraction of TOKEN_LIMIT consumed so far."""
    return block.total_tokens / TOKEN_LIMIT


def projection_progress(block: Block) -> float:
    """Fraction of TOKEN_LIMIT the projection reaches by block end."""
    return block.projection.total_tokens / TOKEN_LIMIT


def render_usage_embed(block: Block, now: Optional[datetime] = None) -> discord.Embed:
    """Build the live usage card for an active block."""
    now = _now(now)
    status = burn_rate_status(block.burn_rate.tokens_per_minute)
    session = session_progress(block, now)
    usage = usage_progress(block)
    projected = projection_progress(block)

    embed = discord.Embed(title=TITLE, color=status.color, timestamp=now)
    embed.set_footer(text=FOOTER)

    embed.add_field(
        name="💻 SESSION",
        value=(
            "```yaml\n"
            f"Started: {block.start_time.strftime(TIME_FORMAT)}\n"
            f"Elapsed: {format_elapsed(block.start_time, now)}\n"
            f"Remaining: {format_time(block.projection.remaining_minutes)}\n"
            f"End Time: {block.end_time.strftime(TIME_FORMAT)}\n"
            f"{progress_bar(session)}\n"
            "```"
        ),
        inline=False,
    )

    embed.add_field(
        name="🔥 USAGE",
        value=(
            "```yaml\n"
            f"Tokens: {format_number(block.total_tokens)}\n"
            f"Burn Rate: {format_number(block.burn_rate.tokens_per_minute)} token/min "
            f"{status.emoji} {status.status}\n"
            f"Limit: {TOKEN_LIMIT:,} tokens\n"
            f"Cost: ${block.cost_usd:.2f}\n"
            f"{progress_bar(usage)}\n"
            f"({format_tokens_with_units(block.total_tokens)}/{format_tokens_with_units(TOKEN_LIMIT)})\n"
            "```"
        ),
        inline=False,
    )

    within = "✅ WITHIN LIMIT" if projected <= 1 else "⚠️ EXCEEDS LIMIT"
    embed.add_field(
        name="📊 PROJECTION",
        value=(
            "```yaml\n"
            f"Status: {within}\n"
            f"Tokens: {format_number(block.projection.total_tokens)}\n"
            f"Cost: ${block.projection.total_cost:.2f}\n"
            f"{progress_bar(projected)}\n"
            f"({format_tokens_with_units(block.projection.total_tokens)}/{format_tokens_with_units(TOKEN_LIMIT)})\n"
            "```"
        ),
        inline=False,
    )

    counts = block.token_counts
    breakdown = "\n".join([
        f"• Input: {format_tokens_with_units(counts.input_tokens)}",
        f"• Output: {format_tokens_with_units(counts.output_tokens)}",
        f"• Cache Creation: {format_tokens_with_units(counts.cache_creation_input_tokens)}",
        f"• Cache Read: {format_tokens_with_units(counts.cache_read_input_tokens)}",
    ])
    embed.add_field(name="📈 TOKEN BREAKDOWN", value=f"```{breakdown}```", inline=True)

    models = "\n".join(f"• {m}" for m in block.models) or "• (none)"
    embed.add_field(name="⚙️ MODELS", value=f"```{models}```", inline=True)

    return embed


def render_no_data_embed(now: Optional[datetime] = None) -> discord.Embed:
    """Grey card shown when ccusage reports no active block."""
    embed = discord.Embed(
        title="📊 Claude Code Usage Monitor",
        description="There is no active session right now.",
        color=COLOR_NO_DATA,
        timestamp=_now(now),
    )
    embed.add_field(
        name="ℹ️ Info",
        value="Start using Claude Code and the card will update on the next refresh.",
        inline=False,
    )
    return embed


def render_error_embed(message: str, now: Optional[datetime] = None) -> discord.Embed:
    """Red card carrying an error message."""
    return discord.Embed(
        title="❌ Error",
        description=message,
        color=COLOR_ERROR,
        timestamp=_now(now),
    )
