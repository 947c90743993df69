"""Marker-delimited section extraction for combined compiled-shader dumps.

The host engine writes every stage of every variant into one text blob, each
stage wrapped in ``#ifdef VERTEX`` / ``#ifdef FRAGMENT`` ... ``#endif``.  The
stage bodies themselves contain nested preprocessor blocks, so the closing
``#endif`` is found by tracking directive depth rather than by the first
``#endif`` after the start marker.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple


VERTEX_MARKER = "#ifdef VERTEX"
FRAGMENT_MARKER = "#ifdef FRAGMENT"
END_MARKER = "#endif"

_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
# "#if" also covers "#ifdef" and "#ifndef"; listed for readability.
_OPENING_DIRECTIVES = ("#if", "#ifdef", "#ifndef")


def split_lines(text: str) -> List[str]:
    """Split on any newline convention, dropping empty entries."""
    if not text:
        return []
    return [line for line in _LINE_SPLIT_RE.split(text) if line]


def opens_block(trimmed: str) -> bool:
    return trimmed.startswith(_OPENING_DIRECTIVES)


def join_non_blank(lines: Iterable[str]) -> str:
    kept = [line for line in lines if line.strip()]
    return "\n".join(kept).rstrip("\r\n")


def capture_block(lines: List[str], start: int, end_marker: str) -> Tuple[List[str], int, bool]:
    """Collect the body of a block whose start marker sits at ``lines[start - 1]``.

    Returns ``(body, next_index, closed)``.  ``body`` excludes both outer
    markers; nested directive lines (and their ``#endif``) are kept verbatim.
    When no balancing end marker exists the body runs to end-of-text and
    ``closed`` is False.
    """
    body: List[str] = []
    depth = 1
    idx = start
    while idx < len(lines):
        line = lines[idx]
        trimmed = line.strip()
        idx += 1
        if opens_block(trimmed):
            depth += 1
        elif trimmed == end_marker:
            depth -= 1
            if depth == 0:
                return body, idx, True
        body.append(line)
    return body, idx, False


def extract_section(text: Optional[str], start_marker: str, end_marker: str) -> str:
    """Return the first region between ``start_marker`` and its balanced ``end_marker``.

    Outer marker lines and wholly blank lines are removed; trailing newline
    characters are stripped.  Missing markers give ``""``.  An unbalanced region
    is still returned: capture runs to end-of-text and the last captured line is
    dropped as if it were the closer.
    """
    if not text or not start_marker or not end_marker:
        return ""

    captured: List[str] = []
    depth = 0
    capturing = False
    for line in split_lines(text):
        trimmed = line.strip()
        if not capturing:
            if trimmed == start_marker:
                capturing = True
                depth = 1
                captured.append(line)
            continue

        if opens_block(trimmed):
            depth += 1
            captured.append(line)
        elif trimmed == end_marker:
            depth -= 1
            captured.append(line)
            if depth == 0:
                break
        else:
            captured.append(line)

    if len(captured) >= 2:
        captured = captured[1:-1]
    return join_non_blank(captured)


def extract_vertex_shader(compiled: Optional[str]) -> str:
    return extract_section(compiled, VERTEX_MARKER, END_MARKER)


def extract_fragment_shader(compiled: Optional[str]) -> str:
    return extract_section(compiled, FRAGMENT_MARKER, END_MARKER)
