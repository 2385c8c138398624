"""
Raw log sink for test runs.

Writes every forwarded output line of a run to ``latest.log`` with a
timestamp, framed by a session header and footer, and keeps the most recent
lines in memory so a failure can be reported together with its output.
"""

from collections import deque
from typing import List, Optional, Sequence

from .events import (
    Event, LogLine, ReadinessTimedOut, RunAborted, RunComplete, SpawnFailed,
)
from .interfaces import FileSystemInterface, ClockInterface
from .log_sanitize import sanitize_line


class RunLog:
    """
    Manages the raw output log of test runs.

    Features:
    - Timestamped log entries with millisecond precision
    - Session headers and footers with run metadata
    - Previous run kept as latest.log.1
    - Recent lines buffer for failure context
    """

    def __init__(
        self,
        filesystem: FileSystemInterface,
        clock: ClockInterface,
        base_dir: str,
        recent_buffer_size: int = 500,
    ):
        self._fs = filesystem
        self._clock = clock
        self._base_dir = base_dir
        self._log_path = f"{base_dir}/latest.log"

        self._run_id: str = ""
        self._file_path: str = ""
        self._started = None
        self._lines_logged: int = 0
        self._recent_lines: deque = deque(maxlen=recent_buffer_size)

    @property
    def log_path(self) -> str:
        return self._log_path

    @property
    def run_id(self) -> str:
        """Current run ID."""
        return self._run_id

    @property
    def lines_logged(self) -> int:
        """Number of lines logged this run."""
        return self._lines_logged

    def start(self, file_path: str, argv: Sequence[str]) -> None:
        """
        Start logging a new run.

        Moves the previous run's log aside, creates a new log file with header.
        """
        self._file_path = file_path
        self._started = self._clock.now()
        self._lines_logged = 0
        self._recent_lines.clear()
        self._run_id = self._started.strftime("run_%Y-%m-%d_%H-%M-%S")

        if self._fs.file_exists(self._log_path):
            self._fs.rename_file(self._log_path, f"{self._log_path}.1")

        self._fs.ensure_dir(self._base_dir)

        sep = "=" * 60
        header = (
            f"{sep}\n"
            f"RUN: {self._run_id}\n"
            f"FILE: {file_path}\n"
            f"COMMAND: {' '.join(argv)}\n"
            f"STARTED: {self._started.isoformat()}\n"
            f"{sep}\n\n"
        )
        self._fs.write_file(self._log_path, header)

    def write(self, stream: str, text: str) -> None:
        """
        Log one output line with timestamp.

        Format: [HH:MM:SS.mmm] <line>   (stderr lines prefixed with "! ")
        """
        line = sanitize_line(text)
        if stream == "stderr":
            line = f"! {line}"
        timestamp = self._clock.now().strftime("%H:%M:%S.%f")[:-3]
        formatted = f"[{timestamp}] {line}\n"

        self._fs.write_file(self._log_path, formatted, append=True)
        self._lines_logged += 1
        self._recent_lines.append(line)

    def end(self, result: str) -> None:
        """Write the run footer."""
        now = self._clock.now()
        if self._started:
            total_seconds = int((now - self._started).total_seconds())
            duration_str = f"{total_seconds // 60}m {total_seconds % 60:02d}s"
        else:
            duration_str = "unknown"

        sep = "=" * 60
        footer = (
            f"\n{sep}\n"
            f"RESULT: {result}\n"
            f"DURATION: {duration_str}\n"
            f"LINES LOGGED: {self._lines_logged}\n"
            f"{sep}\n"
        )
        self._fs.write_file(self._log_path, footer, append=True)

    def recent(self, count: Optional[int] = None) -> List[str]:
        """
        Get the most recent N logged lines (all buffered lines by default).

        Attached to failure reports.
        """
        recent = list(self._recent_lines)
        if count is None or count >= len(recent):
            return recent
        return recent[-count:]

    def observe(self, event: Event) -> None:
        """EventBus observer: log lines and close the run on terminal events."""
        if isinstance(event, LogLine):
            self.write(event.stream, event.text)
        elif isinstance(event, RunComplete):
            if event.exit_code == 0:
                self.end("Test completed successfully!")
            else:
                self.end(f"Test failed with exit code: {event.exit_code}")
        elif isinstance(event, RunAborted):
            self.end("Test stopped by user")
        elif isinstance(event, SpawnFailed):
            self.end(f"Error: {event.reason}")
        elif isinstance(event, ReadinessTimedOut):
            self.end(f"Port {event.port} not ready after {event.timeout_s:g}s")
