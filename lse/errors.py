"""Exception types for Lumi Script Editor support."""

from __future__ import annotations

from typing import Optional, Sequence


class LseError(RuntimeError):
    """Base class for lse failures surfaced to callers."""


class DocumentParseAnomaly(LseError):
    """A structurally ambiguous script line.

    Never raised by the document parser; ambiguous lines are skipped and
    logged. Kept so callers that validate stricter can raise it.
    """

    def __init__(self, line_number: int, text: str) -> None:
        super().__init__(f"line {line_number}: ambiguous command line {text!r}")
        self.line_number = line_number
        self.text = text


class ProcessSpawnFailure(LseError):
    """The test tool could not be located or spawned."""


class UnexpectedExit(LseError):
    """The test tool exited with a nonzero code."""

    def __init__(self, exit_code: int, recent_log: Optional[Sequence[str]] = None) -> None:
        super().__init__(f"Test failed with exit code: {exit_code}")
        self.exit_code = exit_code
        self.recent_log = list(recent_log or [])


class ReadinessTimeout(LseError):
    """A spawned process never served its port within the deadline."""

    def __init__(self, port: int, timeout_s: float, exited: bool = False) -> None:
        reason = "process exited" if exited else f"not ready after {timeout_s:g}s"
        super().__init__(f"port {port} never became connectable ({reason})")
        self.port = port
        self.timeout_s = timeout_s
        self.exited = exited
