"""Global configuration for the ccusage Discord monitor."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
DISCORD_CLIENT_ID = os.getenv("DISCORD_CLIENT_ID")
DISCORD_GUILD_ID = os.getenv("DISCORD_GUILD_ID")

# ccusage CLI
CCUSAGE_BIN = os.getenv("CCUSAGE_BIN", "ccusage")

# Self-telemetry
SYSTEM_MONITOR_INTERVAL = int(os.getenv("SYSTEM_MONITOR_INTERVAL", "30"))
HEAP_PROBE_INTERVAL = 60

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("CCUSAGE_MONITOR_LOG_DIR", Path(__file__).parent / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)


def missing_credentials() -> list[str]:
    """Names of required environment variables that are not set."""
    required = {
        "DISCORD_TOKEN": DISCORD_TOKEN,
        "DISCORD_CLIENT_ID": DISCORD_CLIENT_ID,
    }
    return [name for name, value in required.items() if not value]
