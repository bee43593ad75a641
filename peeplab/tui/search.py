#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Log search and viewport arithmetic.

Matching runs over the raw trace lines while the viewer shows processed
lines; both have the same line count, so match indices address display
lines directly. Highlighting is per line, not per character.
"""

from typing import List, Sequence


def find_matches(lines: Sequence[str], query: str) -> List[int]:
    """Return indices of lines containing query (case-insensitive).

    Each line is reported at most once, in line order. An empty query
    matches nothing.
    """
    if not query:
        return []
    needle = query.casefold()
    return [index for index, line in enumerate(lines) if needle in line.casefold()]


def max_scroll_offset(total_lines: int, viewport_height: int) -> int:
    """Largest offset that still fills the viewport.

    Normally ``total_lines - viewport_height``. Before the first resize the
    viewport height is 0; the limit is then the last line rather than
    one past it, so scrolling never shows an empty window.
    """
    return max(0, total_lines - max(1, viewport_height))


def clamp_offset(offset: int, total_lines: int, viewport_height: int) -> int:
    return max(0, min(offset, max_scroll_offset(total_lines, viewport_height)))


def center_offset(match_line: int, viewport_height: int, total_lines: int) -> int:
    """Scroll offset that puts match_line in the middle of the viewport.

    >>> center_offset(50, 20, 100)
    40
    >>> center_offset(5, 20, 100)
    0
    """
    offset = max(0, match_line - viewport_height // 2)
    return clamp_offset(offset, total_lines, viewport_height)


def cycle_index(index: int, length: int, step: int) -> int:
    """Move index by step, wrapping around a collection of the given length."""
    if length <= 0:
        return 0
    return (index + step) % length
