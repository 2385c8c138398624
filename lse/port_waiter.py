"""Local port selection and readiness polling.

Used when the test tool is asked to serve something on ``--port P`` (the
inspector): pick a port that is free right now, start the tool, then poll
until the port accepts connections.

Typical usage:
    >>> port = find_free_port(9333)
    >>> proc = launcher.spawn([... "--port", str(port)])
    >>> ready = wait_for_port(port, timeout_s=60, has_exited=lambda: proc.poll() is not None)
"""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from .implementations import RealClock
from .interfaces import ClockInterface

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT_RANGE = 100
# Generous: the first inspector start may have to build the tool first.
DEFAULT_READY_TIMEOUT_S = 60.0
DEFAULT_CONNECT_TIMEOUT_S = 0.5
DEFAULT_BACKOFF_S = 0.25


class NoFreePortError(OSError):
    """Every port in the probed range was taken."""


def port_is_free(port: int, host: str = DEFAULT_HOST) -> bool:
    """Try to bind *port*. The socket is closed again immediately."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


def find_free_port(
    start_port: int,
    max_port: Optional[int] = None,
    host: str = DEFAULT_HOST,
) -> int:
    """Return the first port >= *start_port* that can be bound.

    The probe socket is not kept: the result is only a hint for the process
    that will listen on it, so another process may still grab it in between.

    Args:
        start_port: First candidate.
        max_port: Last candidate (inclusive). Defaults to start_port + 100.
        host: Interface to bind.

    Raises:
        NoFreePortError: If no port in the range could be bound.
    """
    if max_port is None:
        max_port = start_port + DEFAULT_PORT_RANGE
    if not (0 < start_port <= 65535) or max_port < start_port:
        raise ValueError(f"invalid port range {start_port}..{max_port}")

    for port in range(start_port, min(max_port, 65535) + 1):
        if port_is_free(port, host):
            logger.debug("Port %d is free", port)
            return port
        logger.debug("Port %d in use, trying next", port)
    raise NoFreePortError(f"no free port in {start_port}..{max_port}")


def port_accepts_connection(
    port: int,
    host: str = DEFAULT_HOST,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
) -> bool:
    """Single short connection attempt."""
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except (socket.timeout, ConnectionRefusedError, OSError):
        return False


def wait_for_port(
    port: int,
    timeout_s: float = DEFAULT_READY_TIMEOUT_S,
    has_exited: Optional[Callable[[], bool]] = None,
    host: str = DEFAULT_HOST,
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    backoff_s: float = DEFAULT_BACKOFF_S,
    clock: Optional[ClockInterface] = None,
) -> bool:
    """Poll until *port* accepts a connection.

    Args:
        port: Port to connect to.
        timeout_s: Overall deadline.
        has_exited: Checked before every attempt; once it returns True the
            poll gives up at once (the server will never come up).
        host: Host to connect to.
        connect_timeout_s: Timeout of each connection attempt.
        backoff_s: Pause after each failed attempt.
        clock: Time source (tests pass a MockClock).

    Returns:
        True if the port became connectable, False on timeout or early exit.
    """
    clock = clock or RealClock()
    deadline = clock.monotonic() + timeout_s
    attempts = 0

    while True:
        if has_exited is not None and has_exited():
            logger.warning("Process exited before port %d became ready", port)
            return False

        attempts += 1
        if port_accepts_connection(port, host, connect_timeout_s):
            logger.info("Port %d ready after %d attempt(s)", port, attempts)
            return True

        if clock.monotonic() >= deadline:
            logger.warning("Port %d did not become ready within %.1fs", port, timeout_s)
            return False
        clock.sleep(backoff_s)
