"""
Events published by the status engine.

Each notification is a typed, frozen dataclass instead of a string-keyed
event name. EventBus is the observer list the engine owns; EventEmitter
mirrors events into a JSONL file so other processes (an editor front end,
an agent) can tail them without sockets.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import portalocker

from .interfaces import FileSystemInterface, ClockInterface
from .status_table import StatusTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    """The status table changed; ``table`` is a snapshot."""
    table: StatusTable


@dataclass(frozen=True)
class MockLocationStarted:
    point_count: int


@dataclass(frozen=True)
class MockLocationStopped:
    pass


@dataclass(frozen=True)
class RunComplete:
    """The tool exited. 0 means the whole run passed."""
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class RunAborted:
    """The user stopped the run."""
    pass


@dataclass(frozen=True)
class SpawnFailed:
    reason: str


@dataclass(frozen=True)
class ReadinessTimedOut:
    port: int
    timeout_s: float


@dataclass(frozen=True)
class LogLine:
    """A raw output line for the log sink. stream is "stdout" or "stderr"."""
    stream: str
    text: str


Event = Union[
    StatusChange,
    MockLocationStarted,
    MockLocationStopped,
    RunComplete,
    RunAborted,
    SpawnFailed,
    ReadinessTimedOut,
    LogLine,
]

Observer = Callable[[Event], None]


class EventBus:
    """Ordered observer list. Observers run synchronously on the publisher's thread."""

    def __init__(self) -> None:
        self._observers: list[Observer] = []
        self._lock = threading.Lock()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register *observer*. Returns a callable that unsubscribes it."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def publish(self, event: Event) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception:
                # An observer bug must not break the output pump.
                logger.exception("Event observer failed for %s", type(event).__name__)


def event_to_record(event: Event) -> tuple[str, dict[str, Any]]:
    """Event type name and JSON-friendly payload."""
    if isinstance(event, StatusChange):
        return "status_change", event.table.to_dict()
    if isinstance(event, MockLocationStarted):
        return "mock_location_started", {"point_count": event.point_count}
    if isinstance(event, MockLocationStopped):
        return "mock_location_stopped", {}
    if isinstance(event, RunComplete):
        return "run_complete", {"exit_code": event.exit_code}
    if isinstance(event, RunAborted):
        return "run_aborted", {}
    if isinstance(event, SpawnFailed):
        return "spawn_failed", {"reason": event.reason}
    if isinstance(event, ReadinessTimedOut):
        return "readiness_timed_out", {"port": event.port, "timeout_s": event.timeout_s}
    if isinstance(event, LogLine):
        return "log_line", {"stream": event.stream, "text": event.text}
    raise TypeError(f"unknown event type: {type(event).__name__}")


class EventEmitter:
    """Append-only JSONL event emitter with simple sequence tracking."""

    def __init__(
        self,
        filesystem: FileSystemInterface,
        clock: ClockInterface,
        events_path: str,
        include_log_lines: bool = False,
    ) -> None:
        self._fs = filesystem
        self._clock = clock
        self._events_path = events_path
        self._include_log_lines = include_log_lines
        self._sequence = 0
        self._session_id: Optional[str] = None

        events_dir = os.path.dirname(events_path) or "."
        self._fs.ensure_dir(events_dir)
        self._sequence = self._load_last_sequence()

    def set_session_id(self, session_id: str) -> None:
        self._session_id = session_id

    def observe(self, event: Event) -> None:
        """EventBus observer: persist *event*."""
        if isinstance(event, LogLine) and not self._include_log_lines:
            return
        event_type, data = event_to_record(event)
        level = "info"
        if isinstance(event, (SpawnFailed, ReadinessTimedOut)):
            level = "error"
        elif isinstance(event, RunComplete) and not event.succeeded:
            level = "warning"
        self.emit(event_type, data, level=level)

    def emit(self, event_type: str, data: Optional[dict[str, Any]] = None, level: str = "info") -> dict[str, Any]:
        self._sequence += 1
        payload = {
            "schema_version": 1,
            "sequence": self._sequence,
            "timestamp": self._clock.now().isoformat(),
            "type": event_type,
            "level": level,
            "session_id": self._session_id,
            "data": data or {},
        }
        self._append_line(json.dumps(payload, sort_keys=True, ensure_ascii=False))
        return payload

    def _append_line(self, content: str) -> None:
        with open(self._events_path, "a", encoding="utf-8") as f:
            portalocker.lock(f, portalocker.LOCK_EX)
            try:
                f.write(content)
                if not content.endswith("\n"):
                    f.write("\n")
                f.flush()
            finally:
                portalocker.unlock(f)

    def _load_last_sequence(self) -> int:
        if not os.path.exists(self._events_path):
            return 0

        try:
            with open(self._events_path, "rb") as f:
                f.seek(0, os.SEEK_END)
                size = f.tell()
                if size == 0:
                    return 0

                # Read the last line efficiently.
                offset = min(size, 4096)
                f.seek(-offset, os.SEEK_END)
                chunk = f.read().splitlines()
                if not chunk:
                    return 0
                last_line = chunk[-1].decode("utf-8", errors="replace")
        except OSError:
            return 0

        try:
            data = json.loads(last_line)
            return int(data.get("sequence", 0) or 0)
        except (ValueError, TypeError, AttributeError):
            return 0
