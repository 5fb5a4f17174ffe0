"""Usage monitor domain - live ccusage cards in Discord channels."""

from .commands import MonitorGroup
from .monitor import UsageMonitor

__all__ = ["MonitorGroup", "UsageMonitor"]
