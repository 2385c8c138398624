"""Device context: cached device list and target selection.

An explicit object handed to whatever needs device information (runner,
inspector, CLI) rather than a process-wide singleton. The list is a simple
time-stamped cache: reused while younger than the TTL, re-queried when
stale or when a refresh is forced.

Device discovery itself is pluggable: a *source* is any callable returning
a list of :class:`Device`. :func:`command_source` wraps an external listing
command with a timeout; its output format is the parser's business.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, asdict
from typing import Callable, Optional, Sequence

from .implementations import RealClock
from .interfaces import ClockInterface

logger = logging.getLogger(__name__)

PLATFORMS = ("android", "ios", "web")
_AVAILABLE_STATES = ("device", "available")


@dataclass(frozen=True)
class Device:
    """A run target."""
    id: str
    name: str
    platform: str   # android | ios | web
    state: str      # as reported by the source, e.g. "device", "Available", "Shutdown"
    type: str       # physical | simulator | emulator | browser

    @property
    def is_available(self) -> bool:
        return self.state.lower() in _AVAILABLE_STATES

    def to_dict(self) -> dict:
        return asdict(self)


BROWSER_DEVICE = Device(id="chrome", name="Chrome", platform="web", state="Available", type="browser")

DeviceSource = Callable[[], list[Device]]


def command_source(
    argv: Sequence[str],
    parser: Callable[[str], list[Device]],
    timeout_s: float = 10.0,
) -> DeviceSource:
    """Build a source that runs *argv* and parses its stdout.

    A missing tool, nonzero exit or timeout yields an empty list.
    """
    def _source() -> list[Device]:
        try:
            result = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=timeout_s,
            )
        except FileNotFoundError:
            logger.debug("Device listing tool not installed: %s", argv[0])
            return []
        except subprocess.TimeoutExpired:
            logger.warning("Device listing timed out after %.0fs: %s", timeout_s, " ".join(argv))
            return []
        if result.returncode != 0:
            logger.debug("Device listing failed (%d): %s", result.returncode, " ".join(argv))
            return []
        return parser(result.stdout)

    return _source


class DeviceContext:
    """
    Device list cache plus the currently selected device.

    Thread-compatible, not thread-safe: use from one thread (the UI/CLI).
    """

    def __init__(
        self,
        sources: Optional[Sequence[DeviceSource]] = None,
        clock: Optional[ClockInterface] = None,
        cache_ttl_s: float = 10.0,
        include_browser: bool = True,
    ):
        self._sources = list(sources or [])
        self._clock = clock or RealClock()
        self._cache_ttl_s = cache_ttl_s
        self._include_browser = include_browser
        self._cached: list[Device] = []
        self._last_refresh: Optional[float] = None
        self._selected: Optional[Device] = None

    @property
    def selected(self) -> Optional[Device]:
        return self._selected

    def select(self, device: Optional[Device]) -> None:
        self._selected = device

    def cache_is_fresh(self) -> bool:
        if self._last_refresh is None or not self._cached:
            return False
        return self._clock.monotonic() - self._last_refresh < self._cache_ttl_s

    def refresh(self, force: bool = False) -> list[Device]:
        """Return the device list, querying sources if stale or forced."""
        if not force and self.cache_is_fresh():
            return list(self._cached)

        devices: list[Device] = []
        for source in self._sources:
            try:
                devices.extend(source())
            except Exception:
                logger.exception("Device source %r failed", source)
        if self._include_browser:
            devices.append(BROWSER_DEVICE)

        self._cached = devices
        self._last_refresh = self._clock.monotonic()
        logger.debug("Device list refreshed: %d device(s)", len(devices))
        return list(devices)

    def find(self, device_id: str) -> Optional[Device]:
        for device in self.refresh():
            if device.id == device_id:
                return device
        return None

    def auto_select(self) -> Optional[Device]:
        """Pick a default: physical, then emulator/simulator, then browser."""
        available = [d for d in self.refresh(force=True) if d.is_available]
        for types in (("physical",), ("emulator", "simulator"), ("browser",)):
            for device in available:
                if device.type in types:
                    self._selected = device
                    return device
        return None

    def ensure_selected(self) -> Optional[Device]:
        """Keep the current selection, else pick a physical device, else the only active one.

        Returns None when the choice is ambiguous; the caller must ask.
        """
        if self._selected is not None:
            return self._selected

        active = [d for d in self.refresh(force=True) if d.platform != "web" and d.is_available]
        physical = [d for d in active if d.type == "physical"]
        if physical:
            self._selected = physical[0]
        elif len(active) == 1:
            self._selected = active[0]
        return self._selected

