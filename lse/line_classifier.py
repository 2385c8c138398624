"""
Status line classifier for test tool output.

Turns one complete output line into a tagged Classification. Rules are
tried in a fixed priority order and at most one fires per line:

    RUNNING         "    ⠼ [0] launchApp..."
    PASSED          "    ✓ [0] launchApp... (2395ms)"
    FAILED          "    ❌ [1] tapOn..."   (the tool also prints "✗")
    LOCATION_START  "  📍 Loaded 120 GPS points from route.gpx"
    LOCATION_STOP   "stopMockLocation", "stopGps", "GPS stopped"

Anything else is UNMATCHED and only goes to the raw log.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .log_sanitize import strip_ansi


class LineKind(Enum):
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    LOCATION_START = "location_start"
    LOCATION_STOP = "location_stop"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class Classification:
    """Result of classifying a single line."""
    kind: LineKind
    line: str
    index: Optional[int] = None
    name: Optional[str] = None
    duration_ms: Optional[int] = None
    point_count: Optional[int] = None

    @property
    def is_status(self) -> bool:
        return self.kind in (LineKind.RUNNING, LineKind.PASSED, LineKind.FAILED)


_RUNNING_RE = re.compile(r"\[(\d+)\]\s+(\w+).*\.\.\.$")
_PASSED_RE = re.compile(r"✓\s+\[(\d+)\]\s+(\w+).*\((\d+)ms\)")
_FAILED_RE = re.compile(r"(?:❌|✗)\s+\[(\d+)\]\s+(\w+)")
_LOCATION_START_RE = re.compile(r"📍\s+Loaded\s+(\d+)\s+GPS\s+points", re.IGNORECASE)
_LOCATION_STOP_RE = re.compile(r"stopGps|stopMockLocation|GPS\s+stopped", re.IGNORECASE)
_RESULT_GLYPHS = ("✓", "❌", "✗")


def _match_running(line: str) -> Optional[Classification]:
    # "❌ [1] tapOn..." is a failure that happens to end in an ellipsis
    if any(glyph in line for glyph in _RESULT_GLYPHS):
        return None
    m = _RUNNING_RE.search(line)
    if not m:
        return None
    return Classification(LineKind.RUNNING, line, index=int(m.group(1)), name=m.group(2))


def _match_passed(line: str) -> Optional[Classification]:
    m = _PASSED_RE.search(line)
    if not m:
        return None
    return Classification(
        LineKind.PASSED, line,
        index=int(m.group(1)), name=m.group(2), duration_ms=int(m.group(3)),
    )


def _match_failed(line: str) -> Optional[Classification]:
    m = _FAILED_RE.search(line)
    if not m:
        return None
    return Classification(LineKind.FAILED, line, index=int(m.group(1)), name=m.group(2))


def _match_location_start(line: str) -> Optional[Classification]:
    m = _LOCATION_START_RE.search(line)
    if not m:
        return None
    return Classification(LineKind.LOCATION_START, line, point_count=int(m.group(1)))


def _match_location_stop(line: str) -> Optional[Classification]:
    if not _LOCATION_STOP_RE.search(line):
        return None
    return Classification(LineKind.LOCATION_STOP, line)


Matcher = Callable[[str], Optional[Classification]]

# Priority order matters: first match wins.
DEFAULT_MATCHERS: tuple[Matcher, ...] = (
    _match_running,
    _match_passed,
    _match_failed,
    _match_location_start,
    _match_location_stop,
)


def normalize_line(line: str) -> str:
    """Strip colour codes and trailing padding the tool adds around status text."""
    return strip_ansi(line).rstrip()


class LineClassifier:
    """
    Classifies output lines with an ordered list of matchers.

    Features:
    - ANSI colour codes and trailing whitespace ignored
    - First matching rule wins
    - Per-kind match counting
    """

    def __init__(self, matchers: Optional[tuple[Matcher, ...]] = None):
        self._matchers = matchers if matchers is not None else DEFAULT_MATCHERS
        self._counts: dict[LineKind, int] = {kind: 0 for kind in LineKind}

    def classify(self, line: str) -> Classification:
        """Classify one complete line."""
        cleaned = normalize_line(line)
        for matcher in self._matchers:
            result = matcher(cleaned)
            if result is not None:
                self._counts[result.kind] += 1
                return result
        self._counts[LineKind.UNMATCHED] += 1
        return Classification(LineKind.UNMATCHED, cleaned)

    def get_counts(self) -> dict[str, int]:
        """Get count of classified lines per kind."""
        return {kind.value: count for kind, count in self._counts.items()}

    def reset_counts(self) -> None:
        """Reset all counts to zero."""
        for kind in self._counts:
            self._counts[kind] = 0


def classify_line(line: str) -> Classification:
    """Classify a single line with the default rules."""
    return LineClassifier().classify(line)
