"""Shared command utilities for the clients."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable

from rangeconfig.config import settings

logger = logging.getLogger(__name__)

# (cmd, timeout) -> CompletedProcess; backends accept one for testing
CommandRunner = Callable[..., subprocess.CompletedProcess]


def run_cmd(cmd: list[str], timeout: float | None = None) -> subprocess.CompletedProcess:
    """Run a command, capturing output.

    A missing executable or a timeout is reported as a failed result
    (returncode 127 / 124) rather than raised, so callers only need to
    inspect ``returncode``.

    Args:
        cmd: Command and arguments to run
        timeout: Command timeout in seconds (settings.command_timeout if None)

    Returns:
        CompletedProcess result
    """
    timeout = settings.command_timeout if timeout is None else timeout
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        return subprocess.CompletedProcess(cmd, 127, "", str(e))
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(cmd, 124, "", f"Command timed out after {timeout}s")


def command_output(result: subprocess.CompletedProcess) -> str:
    """Combined, stripped stdout/stderr for error messages."""
    return " ".join(part.strip() for part in (result.stdout or "", result.stderr or "") if part and part.strip())


def which(name: str) -> str | None:
    return shutil.which(name)
