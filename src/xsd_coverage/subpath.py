"""Segment-aligned subpath matching.

Everything that compares paths (group reference resolution, substitution
group expansion and the coverage check) goes through :func:`full_subpath`.
A plain substring test is not enough: ``"/OJP"`` is a substring of
``"/OJPFare"`` but does not name the same construct.

The matcher works in two steps:

1. find the first character index at which ``needle`` occurs in ``haystack``;
2. split the remainder of ``haystack`` from that index and ``needle`` on the
   delimiter and require every needle segment to equal the corresponding
   remainder segment.

Only the first occurrence is considered. ``full_subpath("/A/Bx/B", "/B")`` is
False because the search stops at ``/Bx`` and the segment comparison fails
there; callers rely on this exact behavior.

Examples:
    >>> full_subpath("/foo/OJPFare/bar", "/OJPFare/bar")
    True
    >>> full_subpath("/OJPFare", "/OJP")
    False
    >>> full_subpath("/foo/OJPFare/bar", "/OJPFare/bar/blu")
    False
"""

from __future__ import annotations

from typing import List, Optional

from .models import DELIMITER


def split_segments(value: str, delimiter: str = DELIMITER) -> List[str]:
    """Split on ``delimiter`` dropping trailing empty segments.

    The leading empty segment of an absolute path is kept, so
    ``"/A/B/"`` becomes ``["", "A", "B"]``.
    """
    parts = value.split(delimiter)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def full_subpath(haystack: str, needle: str, delimiter: str = DELIMITER) -> bool:
    """Return True if ``needle`` occurs in ``haystack`` on segment boundaries.

    Args:
        haystack: Path searched in.
        needle: Path searched for.
        delimiter: Segment delimiter.

    Returns:
        True when the first textual occurrence of ``needle`` lines up with
        whole segments of ``haystack`` and ``haystack`` has at least as many
        segments from that point on as ``needle``.
    """
    start = haystack.find(needle)
    if start < 0:
        return False

    needle_parts = split_segments(needle, delimiter)
    remainder_parts = split_segments(haystack[start:], delimiter)
    if len(remainder_parts) < len(needle_parts):
        return False

    for index, part in enumerate(needle_parts):
        if part != remainder_parts[index]:
            return False
    return True


def rooted_remainder(
    path: str, name: str, delimiter: str = DELIMITER
) -> Optional[str]:
    """Return ``path`` from the segment named ``name`` onwards.

    ``rooted_remainder("/Other/ConcreteY/Child", "ConcreteY")`` returns
    ``"/ConcreteY/Child"``. Returns None when ``path`` is not rooted at
    ``name`` according to :func:`full_subpath`.
    """
    needle = f"{delimiter}{name}"
    if not full_subpath(path, needle, delimiter):
        return None
    return path[path.find(needle):]


def ends_at_segment(path: str, name: str, delimiter: str = DELIMITER) -> bool:
    """Return True if the last segment of ``path`` is exactly ``name``."""
    return path.endswith(f"{delimiter}{name}")
