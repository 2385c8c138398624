"""Shared process-management utilities for lse.

Used by the test runner and the inspector session to check on and stop
the external test tool.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Optional

from .interfaces import ProcessHandle

logger = logging.getLogger(__name__)


def handle_is_alive(proc: Optional[ProcessHandle]) -> bool:
    """Check if a :class:`ProcessHandle` is still running."""
    return proc is not None and proc.poll() is None


def signal_stop(proc: Optional[ProcessHandle]) -> bool:
    """Send a termination signal without waiting for the process to die.

    Returns ``True`` if a signal was sent.
    """
    if not handle_is_alive(proc):
        return False
    logger.info("Sending SIGTERM to pid %d", proc.pid)
    proc.terminate()
    return True


def stop_process_graceful(proc: Optional[ProcessHandle], timeout_s: float = 5.0) -> bool:
    """Terminate, wait up to *timeout_s*, then kill if still alive.

    Returns ``True`` if the process is no longer alive after the call.
    """
    if not signal_stop(proc):
        return True

    try:
        proc.wait(timeout=timeout_s)
        return True
    except (subprocess.TimeoutExpired, TimeoutError):
        pass

    # Force-kill
    logger.warning("pid %d ignored SIGTERM, killing", proc.pid)
    proc.kill()
    try:
        proc.wait(timeout=2.0)
    except (subprocess.TimeoutExpired, TimeoutError):
        pass
    return not handle_is_alive(proc)

