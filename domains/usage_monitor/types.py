"""Type definitions for ccusage session blocks.

Mirrors the JSON emitted by `ccusage blocks --active --json`. Field names are
snake_case here; `from_dict` reads the camelCase keys ccusage writes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from ccusage into an aware UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    return value if isinstance(value, (int, float)) else 0


@dataclass(frozen=True)
class TokenCounts:
    """Token counts split by kind."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TokenCounts":
        data = data or {}
        return cls(
            input_tokens=_number(data, "inputTokens"),
            output_tokens=_number(data, "outputTokens"),
            cache_creation_input_tokens=_number(data, "cacheCreationInputTokens"),
            cache_read_input_tokens=_number(data, "cacheReadInputTokens"),
        )

    @property
    def split_total(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_input_tokens
            + self.cache_read_input_tokens
        )


@dataclass(frozen=True)
class BurnRate:
    """Consumption rate over the active block."""
    tokens_per_minute: float = 0
    tokens_per_minute_for_indicator: float = 0
    cost_per_hour: float = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BurnRate":
        data = data or {}
        return cls(
            tokens_per_minute=_number(data, "tokensPerMinute"),
            tokens_per_minute_for_indicator=_number(data, "tokensPerMinuteForIndicator"),
            cost_per_hour=_number(data, "costPerHour"),
        )


@dataclass(frozen=True)
class Projection:
    """Where the block ends up if the current burn rate holds."""
    total_tokens: float = 0
    total_cost: float = 0
    remaining_minutes: float = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Projection":
        data = data or {}
        return cls(
            total_tokens=_number(data, "totalTokens"),
            total_cost=_number(data, "totalCost"),
            remaining_minutes=max(_number(data, "remainingMinutes"), 0),
        )


@dataclass(frozen=True)
class Block:
    """One contiguous usage window reported by ccusage."""
    id: str
    start_time: datetime
    end_time: datetime
    is_active: bool = False
    is_gap: bool = False
    entries: int = 0
    token_counts: TokenCounts = field(default_factory=TokenCounts)
    total_tokens: int = 0
    cost_usd: float = 0.0
    models: tuple[str, ...] = ()
    burn_rate: BurnRate = field(default_factory=BurnRate)
    projection: Projection = field(default_factory=Projection)
    actual_end_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Block":
        """Build a block from a ccusage JSON object.

        Raises:
            KeyError / ValueError / TypeError on malformed input.
        """
        actual_end = data.get("actualEndTime")
        return cls(
            id=str(data["id"]),
            start_time=parse_timestamp(data["startTime"]),
            end_time=parse_timestamp(data["endTime"]),
            actual_end_time=parse_timestamp(actual_end) if actual_end else None,
            is_active=bool(data.get("isActive", False)),
            is_gap=bool(data.get("isGap", False)),
            entries=int(data.get("entries", 0)),
            token_counts=TokenCounts.from_dict(data.get("tokenCounts")),
            total_tokens=_number(data, "totalTokens"),
            cost_usd=_number(data, "costUSD"),
            models=tuple(data.get("models") or ()),
            burn_rate=BurnRate.from_dict(data.get("burnRate")),
            projection=Projection.from_dict(data.get("projection")),
        )


@dataclass(frozen=True)
class SessionSet:
    """Parsed ccusage response."""
    blocks: tuple[Block, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionSet":
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        raw_blocks = data.get("blocks", [])
        if not isinstance(raw_blocks, list):
            raise TypeError("'blocks' must be a list")
        return cls(blocks=tuple(Block.from_dict(b) for b in raw_blocks))

    def active_block(self) -> Optional[Block]:
        """First block flagged active, if any."""
        for block in self.blocks:
            if block.is_active:
                return block
        return None
