"""Usage monitor domain configuration - ccusage sampling and Discord edit pacing."""

import config as global_config

# ccusage invocation
CCUSAGE_ARGS = ("blocks", "--active", "--json")
SAMPLER_TIMEOUT_SECONDS = 30.0  # Default wait for one-shot samples

# Edit pacing
MIN_SPACING_MS = 60_000  # Minimum gap between edits on one channel
RATE_LIMIT_BACKOFF_MS = 300_000  # Cooling period after a Discord 429
SCHEDULER_SLACK_MS = 50  # Tolerated timer jitter when comparing spacing

# /monitor start interval bounds (seconds)
INTERVAL_MIN_SECONDS = 60
INTERVAL_MAX_SECONDS = 3600
INTERVAL_DEFAULT_SECONDS = 60

# Rendering
TOKEN_LIMIT = 119_433_347
PROGRESS_BAR_WIDTH = 30
BURN_RATE_MODERATE = 100_000  # tokens/min
BURN_RATE_HIGH = 200_000  # tokens/min

COLOR_NORMAL = 0x00FF00
COLOR_MODERATE = 0xFFAA00
COLOR_HIGH = 0xFF0000
COLOR_NO_DATA = 0x808080
COLOR_ERROR = 0xFF0000


def ccusage_command() -> list[str]:
    """Full argv for the ccusage blocks query."""
    return [global_config.CCUSAGE_BIN, *CCUSAGE_ARGS]
