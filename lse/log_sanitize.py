"""
Output line sanitization helpers.

Goals:
- Keep raw logs grep-friendly even if the test tool emits control bytes.
- Strip ANSI color codes (the tool colours its status lines).
- Avoid losing meaningful leading whitespace (don't use `.strip()`).
"""

from __future__ import annotations

import re
from typing import Final


_DEFAULT_MAX_CHARS: Final[int] = 20_000

# ANSI escape code pattern
ANSI_ESCAPE: Final = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return ANSI_ESCAPE.sub("", text)


def sanitize_line(text: str, *, max_chars: int = _DEFAULT_MAX_CHARS) -> str:
    """
    Convert one output line to safe text for logging.

    - Drops trailing CR/LF only (preserves leading/trailing spaces).
    - Removes NUL characters.
    - Strips ANSI escape sequences.
    - Escapes remaining control characters (except tab).
    - Truncates very long lines to keep logs manageable.
    """
    text = text.rstrip("\r\n")
    if "\x00" in text:
        text = text.replace("\x00", "")

    text = strip_ansi(text)

    out: list[str] = []
    for ch in text:
        if ch == "\t" or ch.isprintable():
            out.append(ch)
            continue
        out.append(f"\\x{ord(ch):02x}")

    sanitized = "".join(out)
    if max_chars > 0 and len(sanitized) > max_chars:
        sanitized = sanitized[:max_chars] + "...[truncated]"
    return sanitized
