"""System Monitor job.

Runs every 30 seconds (SYSTEM_MONITOR_INTERVAL) to snapshot host and process
metrics, probe Discord API reachability and log threshold alerts:
- HIGH_MEMORY_USAGE: process RSS above 90% of host memory
- HIGH_HEAP_USAGE: resident above 85% of the process's virtual size
- HIGH_CPU_USAGE: process CPU above 80%
- API_UNREACHABLE: Discord gateway endpoint did not answer 200
- NO_ACTIVE_CONNECTIONS: no ESTABLISHED TCP connections on the host
- HIGH_LOAD_AVERAGE: 1-minute load above twice the core count

Snapshots go to the log only; nothing is retained between runs.
"""

import asyncio
import json
import platform
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx
import psutil
from apscheduler.jobstores.base import JobLookupError

from config import HEAP_PROBE_INTERVAL, SYSTEM_MONITOR_INTERVAL
from logger import logger

DISCORD_GATEWAY_URL = "https://discord.com/api/v10/gateway"
PING_TIMEOUT_SECONDS = 5.0

# TCP tables and the ESTABLISHED state code used in them
TCP_TABLES = ("/proc/net/tcp", "/proc/net/tcp6")
TCP_ESTABLISHED = "01"

# Thresholds (percent unless noted)
MEMORY_ALERT_PERCENT = 90
HEAP_ALERT_PERCENT = 85
HEAP_CRITICAL_PERCENT = 90
CPU_ALERT_PERCENT = 80
LOAD_ALERT_PER_CORE = 2  # 1-min load / cores


@dataclass
class SystemMetrics:
    """Point-in-time snapshot of host and process health."""
    timestamp: float
    memory_used: int  # process RSS, bytes
    memory_total: int  # host memory, bytes
    heap_used: int
    heap_total: int
    cpu_usage: float
    load_average: tuple[float, float, float]
    cpu_count: int
    discord_reachable: bool
    active_connections: int
    uptime_seconds: float
    pid: int
    platform: str
    python_version: str

    @property
    def memory_percent(self) -> float:
        return self.memory_used / self.memory_total * 100 if self.memory_total else 0.0

    @property
    def heap_percent(self) -> float:
        return self.heap_used / self.heap_total * 100 if self.heap_total else 0.0

    def to_log_record(self) -> dict:
        """Flat fields for the SYSTEM_METRICS log line."""
        return {
            "timestamp": datetime.fromtimestamp(self.timestamp, timezone.utc).isoformat(),
            "memory_used_mb": round(self.memory_used / 1024 / 1024),
            "memory_percentage": round(self.memory_percent, 1),
            "heap_used_mb": round(self.heap_used / 1024 / 1024),
            "heap_percentage": round(self.heap_percent, 1),
            "cpu_usage": round(self.cpu_usage, 1),
            "load_avg": ",".join(f"{load:.2f}" for load in self.load_average),
            "uptime_hours": round(self.uptime_seconds / 3600, 1),
            "pid": self.pid,
            "discord_reachable": self.discord_reachable,
            "active_connections": self.active_connections,
        }


def heap_usage(process: psutil.Process) -> tuple[int, int]:
    """(used, total) heap bytes, taken as resident vs. virtual process size."""
    mem = process.memory_info()
    return mem.rss, mem.vms


def count_established(table: str) -> int:
    """Count ESTABLISHED rows in a /proc/net/tcp style table."""
    count = 0
    for line in table.splitlines()[1:]:  # Skip header
        fields = line.split()
        if len(fields) > 3 and fields[3] == TCP_ESTABLISHED:
            count += 1
    return count


async def get_active_connections() -> int:
    """Number of established TCP connections on the host.

    Non-Linux hosts report 1 (unknown, assume connected).
    """
    if not sys.platform.startswith("linux"):
        return 1

    total = 0
    for path in TCP_TABLES:
        try:
            table = await asyncio.to_thread(Path(path).read_text)
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            continue
        total += count_established(table)
    return total


async def ping_discord_api(timeout: float = PING_TIMEOUT_SECONDS) -> bool:
    """HEAD the Discord gateway endpoint; True only on HTTP 200."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await asyncio.wait_for(client.head(DISCORD_GATEWAY_URL), timeout=timeout)
            return response.status_code == 200
    except Exception as e:
        logger.debug(f"Discord API ping failed: {e!r}")
        return False


def check_alerts(metrics: SystemMetrics) -> list[str]:
    """Log an alert for every threshold the snapshot crosses.

    Returns:
        Tags of the alerts raised
    """
    raised = []

    if metrics.memory_percent > MEMORY_ALERT_PERCENT:
        logger.warning(
            f"HIGH_MEMORY_USAGE: {metrics.memory_percent:.1f}% "
            f"({round(metrics.memory_used / 1024 / 1024)}MB)"
        )
        raised.append("HIGH_MEMORY_USAGE")

    if metrics.heap_percent > HEAP_ALERT_PERCENT:
        logger.warning(
            f"HIGH_HEAP_USAGE: {metrics.heap_percent:.1f}% "
            f"({round(metrics.heap_used / 1024 / 1024)}MB)"
        )
        raised.append("HIGH_HEAP_USAGE")

    if metrics.cpu_usage > CPU_ALERT_PERCENT:
        logger.warning(f"HIGH_CPU_USAGE: {metrics.cpu_usage:.1f}%")
        raised.append("HIGH_CPU_USAGE")

    if not metrics.discord_reachable:
        logger.error("API_UNREACHABLE: Cannot reach Discord API")
        raised.append("API_UNREACHABLE")

    if metrics.active_connections == 0:
        logger.warning("NO_ACTIVE_CONNECTIONS: No active network connections detected")
        raised.append("NO_ACTIVE_CONNECTIONS")

    load_threshold = metrics.cpu_count * LOAD_ALERT_PER_CORE
    if metrics.load_average[0] > load_threshold:
        logger.warning(
            f"HIGH_LOAD_AVERAGE: {metrics.load_average[0]:.2f} (threshold: {load_threshold})"
        )
        raised.append("HIGH_LOAD_AVERAGE")

    return raised


class SystemMonitor:
    """Periodic self-telemetry for the bot process."""

    def __init__(
        self,
        process: Optional[psutil.Process] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._process = process or psutil.Process()
        self._clock = clock
        self._job = None

        # Rolling CPU accounting for the differential CPU percent
        cpu = self._process.cpu_times()
        self._last_cpu = cpu.user + cpu.system
        self._last_time = self._clock()

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def start(self, scheduler, interval_seconds: int = SYSTEM_MONITOR_INTERVAL) -> None:
        """Collect now, then every interval_seconds."""
        if self._job is not None:
            logger.warning("System monitor already running")
            return

        self._job = scheduler.add_job(
            self.collect_metrics,
            'interval',
            seconds=interval_seconds,
            id="system_monitor",
            next_run_time=datetime.now(timezone.utc),
            coalesce=True,
            max_instances=1,
        )
        logger.info(f"Starting system monitor with {interval_seconds}s interval")

    def stop(self) -> None:
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            pass  # Scheduler already shut down
        self._job = None
        logger.info("System monitor stopped")

    async def collect_metrics(self) -> Optional[SystemMetrics]:
        """One telemetry iteration. Never raises."""
        try:
            metrics = await self.get_system_metrics()
            logger.info(f"SYSTEM_METRICS | {json.dumps(metrics.to_log_record())}")
            check_alerts(metrics)
            return metrics
        except Exception as e:
            logger.error(f"Failed to collect system metrics: {e!r}")
            return None

    async def get_system_metrics(self) -> SystemMetrics:
        mem = self._process.memory_info()
        heap_used, heap_total = heap_usage(self._process)
        cpu_usage = self.calculate_cpu_usage()
        active_connections = await get_active_connections()
        discord_reachable = await ping_discord_api()

        return SystemMetrics(
            timestamp=time.time(),
            memory_used=mem.rss,
            memory_total=psutil.virtual_memory().total,
            heap_used=heap_used,
            heap_total=heap_total,
            cpu_usage=cpu_usage,
            load_average=tuple(psutil.getloadavg()),
            cpu_count=psutil.cpu_count() or 1,
            discord_reachable=discord_reachable,
            active_connections=active_connections,
            uptime_seconds=time.time() - self._process.create_time(),
            pid=self._process.pid,
            platform=f"{sys.platform}/{platform.machine()}",
            python_version=platform.python_version(),
        )

    def calculate_cpu_usage(self) -> float:
        """Process CPU percent since the previous call, clamped to [0, 100]."""
        cpu = self._process.cpu_times()
        now = self._clock()
        current = cpu.user + cpu.system

        used = current - self._last_cpu
        elapsed = now - self._last_time
        self._last_cpu = current
        self._last_time = now

        if elapsed <= 0:
            return 0.0
        return min(max(used / elapsed * 100, 0.0), 100.0)


def check_heap_usage(process: Optional[psutil.Process] = None) -> float:
    """Log CRITICAL_HEAP_USAGE when heap use passes HEAP_CRITICAL_PERCENT."""
    used, total = heap_usage(process or psutil.Process())
    percent = used / total * 100 if total else 0.0
    if percent > HEAP_CRITICAL_PERCENT:
        logger.critical(f"CRITICAL_HEAP_USAGE: {percent:.1f}% - Potential memory leak!")
    return percent


def register_heap_probe(scheduler) -> None:
    """Register the low-frequency heap probe with the scheduler."""
    scheduler.add_job(
        check_heap_usage,
        'interval',
        seconds=HEAP_PROBE_INTERVAL,
        id="heap_probe"
    )
    logger.info(f"Registered heap probe job (every {HEAP_PROBE_INTERVAL}s)")


# Global monitor instance
system_monitor = SystemMonitor()


def register_system_monitor(scheduler, interval_seconds: int = SYSTEM_MONITOR_INTERVAL) -> None:
    """Register the telemetry job with the scheduler (first run immediately)."""
    system_monitor.start(scheduler, interval_seconds)


def stop_system_monitor() -> None:
    system_monitor.stop()
