#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Job log processing for the log viewer.

Turns a raw CI trace into styled Rich ``Text`` lines:

1. section_start/section_end marker lines become empty lines
2. runner control prefixes (``00O``, ``00E`` ...) are stripped
3. leading ISO-8601 timestamps are hidden or shortened per TimestampMode
4. ANSI color/style sequences are parsed into spans

Output always has exactly one line per input line so scroll offsets and
search matches computed on the raw trace line up with what is displayed.
"""

import re
from typing import Iterable, List

from rich.ansi import AnsiDecoder
from rich.text import Text

from peeplab.tui.app_state import TimestampMode

SECTION_MARKERS = ("section_start:", "section_end:")

# Control bytes / cursor codes may surround the runner stream code
_CONTROL = r"(?:\x00|\x1b\[[0-9;]*[A-Za-z])"
PREFIX_RE = re.compile(rf"^{_CONTROL}*00[0-9A-Fa-fEO]\+?{_CONTROL}*\s*")

# 2026-01-12T10:35:38.187431Z 00O [0KMessage...
TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2}:\d{2})(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?"
    r"\s+\d{2}[OE]\+?\s*(?:\x1b?\[0K)?"
)

# Characters str.splitlines() would treat as line breaks, besides \n and \r
_EXTRA_BREAKS = re.compile("[\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029]")


def split_lines(content: str) -> List[str]:
    """Split a trace into lines on ``\\n`` only.

    A trailing newline does not produce an extra empty line and a trailing
    ``\\r`` is dropped from each line. Carriage returns inside a line are
    kept (progress output) and resolved by the ANSI decoder.
    """
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def is_section_marker(line: str) -> bool:
    return any(marker in line for marker in SECTION_MARKERS)


def strip_runner_prefix(line: str) -> str:
    """Remove a leading runner stream code such as ``00O``."""
    return PREFIX_RE.sub("", line, count=1)


def format_timestamp(line: str, mode: TimestampMode) -> str:
    """Apply the timestamp display mode to one (non-marker) line."""
    match = TIMESTAMP_RE.match(line)
    if match is None:
        return strip_runner_prefix(line)

    date, clock = match.group(1), match.group(2)
    rest = line[match.end():]
    if mode is TimestampMode.HIDDEN:
        return rest
    if mode is TimestampMode.DATE_ONLY:
        return f"{date} {rest}"
    return f"{date} {clock} {rest}"


def process_line(line: str, mode: TimestampMode) -> str:
    if is_section_marker(line):
        return ""
    return format_timestamp(line, mode)


def _to_text(decoder: AnsiDecoder, line: str) -> Text:
    line = _EXTRA_BREAKS.sub(" ", line)
    try:
        return decoder.decode_line(line)
    except (ValueError, IndexError, KeyError):
        # Malformed escape sequence: show it unstyled
        return Text(line)


def process_log_content(content: str, mode: TimestampMode) -> List[Text]:
    """Process a raw trace into display lines, one per input line."""
    # One decoder per log: styles carry across lines like a terminal
    decoder = AnsiDecoder()
    return [_to_text(decoder, process_line(line, mode)) for line in split_lines(content)]


def plain_text(lines: Iterable[Text]) -> str:
    """Join processed lines back into plain text (no styles)."""
    return "\n".join(line.plain for line in lines)
