"""ccusage sampler - runs the CLI and parses the active session blocks.

Every failure mode (spawn error, timeout, stderr output, non-zero exit,
unparseable JSON) collapses into ``None`` so callers can react uniformly.
"""

import asyncio
import json
from typing import Optional

from logger import logger
from utils import sanitize_for_log
from .config import SAMPLER_TIMEOUT_SECONDS, ccusage_command
from .types import SessionSet


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill a child process and reap it."""
    try:
        proc.kill()
    except ProcessLookupError:
        pass  # Already exited
    await proc.wait()


async def sample(timeout: Optional[float] = None) -> Optional[SessionSet]:
    """Run `ccusage blocks --active --json` and parse its output.

    Args:
        timeout: Max seconds to wait for the CLI (default SAMPLER_TIMEOUT_SECONDS)

    Returns:
        Parsed SessionSet, or None on any failure
    """
    if timeout is None:
        timeout = SAMPLER_TIMEOUT_SECONDS
    cmd = ccusage_command()

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except Exception as e:
        logger.error(f"Failed to spawn ccusage: {e}")
        return None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"ccusage timed out after {timeout:.1f}s")
        await _kill(proc)
        return None
    except asyncio.CancelledError:
        # Caller torn down mid-sample; don't leave the child running
        await _kill(proc)
        raise

    # ccusage may print diagnostics to stderr; any output there counts as failure
    if stderr and stderr.strip():
        logger.error(f"Error executing ccusage: {sanitize_for_log(stderr)}")
        return None

    if proc.returncode != 0:
        logger.error(f"ccusage exited with code {proc.returncode}")
        return None

    try:
        return SessionSet.from_dict(json.loads(stdout))
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to parse ccusage output: {e}")
        return None
