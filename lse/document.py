"""
Test script document model.

A script is an optional header, a ``---`` separator line, then an ordered
list of ``- name[: params]`` command lines. Only structural line
classification is done here; the YAML itself is never validated.

Indentation is not used to tell nesting apart: a ``- name`` line inside a
loop or retry body is indexed exactly like a top-level command, matching the
positional ``--command-index`` the test tool understands.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from .command_index import CommandEntry, index_lines, match_command

logger = logging.getLogger(__name__)

SEPARATOR = "---"

_MOCK_LOCATION_RE = re.compile(r"(?:mockLocation|gps):", re.IGNORECASE)
_SPEED_RE = re.compile(r"speed:\s*([\d.]+)", re.IGNORECASE)
DEFAULT_MOCK_SPEED = 60.0


@dataclass(frozen=True)
class DocumentLine:
    """One physical line of the script."""
    number: int
    text: str


@dataclass
class TestDocument:
    """Parse result for one revision of a script's text."""
    __test__ = False  # not a pytest test class

    lines: list[DocumentLine] = field(default_factory=list)
    separator_line: Optional[int] = None
    commands: list[CommandEntry] = field(default_factory=list)

    @property
    def command_start_line(self) -> int:
        if self.separator_line is None:
            return 0
        return self.separator_line + 1

    @property
    def run_all_line(self) -> int:
        """Line that anchors a whole-file run action."""
        return self.separator_line if self.separator_line is not None else 0

    @property
    def has_separator(self) -> bool:
        return self.separator_line is not None


def find_separator(lines: list[str]) -> Optional[int]:
    """Index of the first line whose stripped content is exactly ``---``."""
    for number, text in enumerate(lines):
        if text.strip() == SEPARATOR:
            return number
    return None


def parse(text: str) -> TestDocument:
    """Parse script text into lines, separator position and command entries.

    Never raises on odd content: lines that look like list items but carry
    no command name are logged and treated as parameters of the preceding
    command.
    """
    raw_lines = text.splitlines()
    doc = TestDocument(
        lines=[DocumentLine(number=i, text=t) for i, t in enumerate(raw_lines)],
        separator_line=find_separator(raw_lines),
    )
    doc.commands = index_lines(raw_lines, doc.command_start_line)

    for number in range(doc.command_start_line, len(raw_lines)):
        line = raw_lines[number]
        stripped = line.strip()
        if stripped.startswith("-") and stripped != SEPARATOR and match_command(line) is None:
            logger.debug("line %d: list item without command name, not indexed: %r", number, line)

    return doc


def mock_location_hint(text: str) -> Optional[float]:
    """Initial GPS speed if the script drives a mock location, else None.

    Looks for a ``mockLocation:`` or ``gps:`` key anywhere in the text and
    takes the first ``speed: N`` value, defaulting to 60.
    """
    if not _MOCK_LOCATION_RE.search(text):
        return None
    m = _SPEED_RE.search(text)
    if not m:
        return DEFAULT_MOCK_SPEED
    try:
        return float(m.group(1))
    except ValueError:
        return DEFAULT_MOCK_SPEED
