"""
Canonical command indexing for test scripts.

Every editor feature that refers to "command K" (run buttons, status glyphs,
the ``--command-index`` argument passed to the test tool) derives K from
here, from a parse of the text as it is at that moment. Indices are purely
positional and are never carried across edits.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .devices import Device
    from .document import TestDocument

# "- launchApp", "  - tapOn: Login", "-assertVisible:"
COMMAND_RE = re.compile(r"^\s*-\s*(\w+):?")


@dataclass(frozen=True)
class CommandEntry:
    """A command line in the command region, with its positional index."""
    index: int
    line_number: int
    raw_text: str
    name: str


def match_command(text: str) -> Optional[str]:
    """Return the command name if *text* is a command line, else None."""
    m = COMMAND_RE.match(text)
    return m.group(1) if m else None


def index_lines(lines: Sequence[str], start_line: int = 0) -> list[CommandEntry]:
    """Assign indices 0, 1, 2... to command lines at or after *start_line*."""
    entries: list[CommandEntry] = []
    for number in range(start_line, len(lines)):
        name = match_command(lines[number])
        if name is None:
            continue
        entries.append(CommandEntry(
            index=len(entries),
            line_number=number,
            raw_text=lines[number],
            name=name,
        ))
    return entries


def index_commands(document: "TestDocument") -> list[CommandEntry]:
    """Ordered command entries of a parsed document.

    Pure and deterministic: the same document always yields equal entries.
    """
    return index_lines([line.text for line in document.lines], document.command_start_line)


def index_text(text: str) -> list[CommandEntry]:
    """Parse *text* and index it in one step."""
    from .document import parse

    return index_commands(parse(text))


def command_at_line(text: str, line_number: int) -> Optional[CommandEntry]:
    """Entry whose command sits on *line_number* in the current text."""
    for entry in index_text(text):
        if entry.line_number == line_number:
            return entry
    return None


def entry_for_index(text: str, index: int) -> Optional[CommandEntry]:
    """Entry with *index* in the current text, or None if out of range."""
    entries = index_text(text)
    if 0 <= index < len(entries):
        return entries[index]
    return None


def build_run_args(
    file_path: str,
    command_index: Optional[int] = None,
    device: Optional["Device"] = None,
) -> list[str]:
    """Arguments for the test tool's ``run`` action.

    Args:
        file_path: Script to run.
        command_index: Run only this command (0-based, from index_commands).
        device: Target device; adds ``--platform`` and ``--device``.
    """
    args = ["run", file_path]
    if command_index is not None:
        if command_index < 0:
            raise ValueError(f"command index must be >= 0, got {command_index}")
        args.extend(["--command-index", str(command_index)])
    if device is not None:
        args.extend(["--platform", device.platform, "--device", device.id])
    return args
