"""
Status engine: streamed test tool output -> per-command status table.

Consumes raw chunks from the tool's stdout (primary) and stderr
(diagnostic), frames them into lines, classifies each complete line and
updates a StatusTable, publishing typed events on its EventBus.

Lifecycle of one engine (one run):

    active --process_exited(code)--> COMPLETED   (RunComplete)
    active --stop()----------------> ABORTED     (RunAborted)
    active --spawn_failed()--------> SPAWN_FAILED
    active --readiness_timed_out()-> READINESS_TIMED_OUT

Once terminal, later chunks and exit notifications are ignored: a stopped
or superseded run no longer owns its process's output.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Optional, Pattern, Union

from .events import (
    EventBus,
    LogLine,
    MockLocationStarted,
    MockLocationStopped,
    ReadinessTimedOut,
    RunAborted,
    RunComplete,
    SpawnFailed,
    StatusChange,
)
from .interfaces import CommandState, RunOutcome
from .line_buffer import LineBuffer
from .line_classifier import Classification, LineClassifier, LineKind
from .status_table import StatusTable

logger = logging.getLogger(__name__)

STDOUT = "stdout"
STDERR = "stderr"

# Build chatter the tool's toolchain prints on stderr before/while running.
DEFAULT_NOISE_RE = re.compile(
    r"warning:"
    r"|Compiling"
    r"|^\s*Finished\b"
    r"|^\s*Running\s+`"
    r"|Blocking waiting for file lock"
    r"|^\s*-->"
    r"|^\s*\d*\s*\|"
    r"|^\s*=\s*(?:note|help):"
)


class StatusEngine:
    """
    Classifies the output of one run and keeps its StatusTable.

    All feeds are expected from one logical sequence (the session pump);
    a lock still serializes them against stop() coming from another thread.
    """

    def __init__(
        self,
        file_path: str = "",
        bus: Optional[EventBus] = None,
        classifier: Optional[LineClassifier] = None,
        noise_re: Optional[Pattern[str]] = None,
        max_line_chars: int = 4096,
    ):
        self.table = StatusTable(file_path)
        self.bus = bus or EventBus()
        self._classifier = classifier or LineClassifier()
        self._noise_re = noise_re if noise_re is not None else DEFAULT_NOISE_RE
        self._buffers = {
            STDOUT: LineBuffer(max_line_chars=max_line_chars),
            STDERR: LineBuffer(max_line_chars=max_line_chars),
        }
        self._lock = threading.RLock()

        self.current_index = 0
        self.outcome: Optional[RunOutcome] = None
        self.exit_code: Optional[int] = None
        self.lines_seen = 0
        self.lines_suppressed = 0

    @property
    def is_active(self) -> bool:
        return self.outcome is None

    # ------------------------------------------------------------------
    # Stream input
    # ------------------------------------------------------------------

    def feed_stdout(self, chunk: Union[bytes, str]) -> None:
        self._feed(STDOUT, chunk)

    def feed_stderr(self, chunk: Union[bytes, str]) -> None:
        self._feed(STDERR, chunk)

    def _feed(self, stream: str, chunk: Union[bytes, str]) -> None:
        with self._lock:
            if not self.is_active:
                return
            for line in self._buffers[stream].feed(chunk):
                self._handle_line(stream, line)

    def is_noise(self, line: str) -> bool:
        """True for diagnostic-stream build chatter kept out of the raw log."""
        return bool(self._noise_re.search(line))

    def _handle_line(self, stream: str, line: str) -> None:
        self.lines_seen += 1
        if stream == STDERR and self.is_noise(line):
            self.lines_suppressed += 1
        else:
            self.bus.publish(LogLine(stream=stream, text=line))

        # Diagnostic lines are classified too, in case a status line lands there.
        result = self._classifier.classify(line)
        if result.kind is not LineKind.UNMATCHED:
            logger.debug("%s line classified as %s: %r", stream, result.kind.value, result.line)
        self._apply(result)

    def _apply(self, result: Classification) -> None:
        if result.kind is LineKind.RUNNING:
            self._set_status(result.index, CommandState.RUNNING, f"Running: {result.name}")
        elif result.kind is LineKind.PASSED:
            self._set_status(
                result.index, CommandState.PASSED, f"Passed: {result.name}",
                duration_ms=result.duration_ms,
            )
            self.current_index = result.index + 1
        elif result.kind is LineKind.FAILED:
            self._set_status(result.index, CommandState.FAILED, f"Failed: {result.name}")
        elif result.kind is LineKind.LOCATION_START:
            self.bus.publish(MockLocationStarted(point_count=result.point_count))
        elif result.kind is LineKind.LOCATION_STOP:
            self.bus.publish(MockLocationStopped())

    def _set_status(
        self,
        index: int,
        state: CommandState,
        message: str,
        duration_ms: Optional[int] = None,
    ) -> None:
        if not self.table.apply(index, state, message, duration_ms):
            current = self.table.state_of(index)
            logger.debug("Ignored %s for command %d: already %s",
                         state.value, index, current.value if current else None)
            return
        self.bus.publish(StatusChange(table=self.table.snapshot()))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def process_exited(self, exit_code: int) -> bool:
        """Flush partial lines and finish the run. Returns False if already finished."""
        with self._lock:
            if not self.is_active:
                return False
            for stream in (STDOUT, STDERR):
                for line in self._buffers[stream].flush():
                    self._handle_line(stream, line)
            self.outcome = RunOutcome.COMPLETED
            self.exit_code = exit_code
            if exit_code == 0:
                logger.info("Run finished: %s", self.table.file_path)
            else:
                logger.warning("Run failed with exit code %d: %s", exit_code, self.table.file_path)
            self.bus.publish(RunComplete(exit_code=exit_code))
            return True

    def stop(self) -> bool:
        """Abort without classifying anything still buffered."""
        with self._lock:
            if not self.is_active:
                return False
            for buf in self._buffers.values():
                buf.clear()
            self.outcome = RunOutcome.ABORTED
            logger.info("Run stopped by user: %s", self.table.file_path)
            self.bus.publish(RunAborted())
            return True

    def spawn_failed(self, reason: str) -> bool:
        with self._lock:
            if not self.is_active:
                return False
            self.outcome = RunOutcome.SPAWN_FAILED
            logger.error("Could not start test tool: %s", reason)
            self.bus.publish(SpawnFailed(reason=reason))
            return True

    def readiness_timed_out(self, port: int, timeout_s: float) -> bool:
        with self._lock:
            if not self.is_active:
                return False
            self.outcome = RunOutcome.READINESS_TIMED_OUT
            logger.warning("Port %d not ready within %.1fs", port, timeout_s)
            self.bus.publish(ReadinessTimedOut(port=port, timeout_s=timeout_s))
            return True
