"""Group reference resolution.

The generator leaves a placeholder ``<prefix>/groupRef/<Group>`` wherever a
particle references a named model group. This module replaces those
placeholders with the paths found under the group's own top-level walk
(``/<Group>/...``), in rounds, because a group may itself reference other
groups.

Each round reads from a frozen snapshot of the previous round and writes into
a deep copy of it:

1. paths without the ``/groupRef/`` marker are copied unchanged;
2. paths with more than one marker are logged as anomalies and kept;
3. a placeholder at the document root (empty prefix) is dropped;
4. a wrapper (last prefix segment equal to the referenced group name) is
   replaced by the prefix alone;
5. otherwise every path rooted at the group name contributes its remainder
   below the group, attached to the prefix; the placeholder is removed.

Resolution stops early once a round changes nothing.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from .models import (
    DELIMITER,
    Bitmap,
    ResolutionReport,
    add_path,
    bitmap_signature,
    deep_copy_bitmap,
    group_ref_marker,
)
from .subpath import full_subpath

logger = logging.getLogger(__name__)


def gather_group_paths(
    bitmap: Bitmap, needle: str, delimiter: str = DELIMITER
) -> List[str]:
    """Return the remainders of all paths rooted at ``needle``.

    A path qualifies only when it starts with ``needle`` on segment
    boundaries: needle ``/Group`` and path ``/Group/A/B`` give ``/A/B``,
    while ``/Person/Group/C`` (an element sharing the group name) and
    ``/GroupX/D`` contribute nothing. Paths ending at the needle contribute
    nothing either.
    """
    remainders: List[str] = []
    for paths in bitmap.values():
        if paths is None:
            continue
        for path in paths:
            if not (path.startswith(needle) and full_subpath(path, needle, delimiter)):
                continue
            remainder = path[len(needle):]
            if remainder.strip(delimiter):
                remainders.append(remainder)
    return sorted(set(remainders))


def has_placeholders(bitmap: Bitmap, delimiter: str = DELIMITER) -> bool:
    """True if any path still holds exactly one group reference marker."""
    marker = group_ref_marker(delimiter)
    return any(
        path.count(marker) == 1
        for paths in bitmap.values()
        if paths is not None
        for path in paths
    )


def _count_changes(before: Bitmap, after: Bitmap) -> int:
    old = bitmap_signature(before)
    new = bitmap_signature(after)
    changes = 0
    for file_id in set(old) | set(new):
        old_paths = old.get(file_id) or frozenset()
        new_paths = new.get(file_id) or frozenset()
        changes += len(old_paths ^ new_paths)
    return changes


def _resolve_round(
    source: Bitmap, target: Bitmap, delimiter: str, report: ResolutionReport
) -> None:
    marker = group_ref_marker(delimiter)
    gathered: Dict[str, List[str]] = {}

    for file_id, paths in source.items():
        if paths is None:
            continue
        written = target[file_id]
        for path in paths:
            parts = path.split(marker)
            if len(parts) == 1:
                continue
            if len(parts) > 2:
                if path not in report.anomalies:
                    logger.warning(
                        f"Path with {len(parts) - 1} group references left unresolved: {path}"
                    )
                report.anomalies.add(path)
                continue

            prefix, tail = parts
            written.pop(path, None)
            if not prefix:
                logger.debug(f"Dropping root-level group reference {path}")
                continue

            group_name = tail.split(delimiter)[0]
            if prefix.split(delimiter)[-1] == group_name:
                logger.debug(f"Collapsing wrapper {path} to {prefix}")
                add_path(target, file_id, prefix)
                continue

            needle = f"{delimiter}{tail}"
            if needle not in gathered:
                gathered[needle] = gather_group_paths(source, needle, delimiter)
            if not gathered[needle]:
                if group_name not in report.unresolved:
                    logger.info(f"Group {group_name} not found, dropping {path}")
                report.unresolved.add(group_name)
                continue
            for remainder in gathered[needle]:
                add_path(target, file_id, f"{prefix}{remainder}")


def resolve_group_refs(
    bitmap: Bitmap, rounds: int = 3, delimiter: str = DELIMITER
) -> Tuple[Bitmap, ResolutionReport]:
    """Resolve group reference placeholders for up to ``rounds`` rounds.

    Args:
        bitmap: Raw bitmap from the path generator; left unchanged.
        rounds: Maximum number of rounds.
        delimiter: Path segment delimiter.

    Returns:
        Tuple of the resolved bitmap and a :class:`ResolutionReport`.

    Raises:
        ValueError: If ``rounds`` is negative.
    """
    if rounds < 0:
        raise ValueError(f"rounds must not be negative, got {rounds}")

    report = ResolutionReport()
    source = deep_copy_bitmap(bitmap)
    for round_number in range(1, rounds + 1):
        target = deep_copy_bitmap(source)
        _resolve_round(source, target, delimiter, report)
        changes = _count_changes(source, target)
        report.rounds_run = round_number
        report.changes_per_round.append(changes)
        logger.info(f"Group reference round {round_number}: {changes} path changes")
        source = target
        if changes == 0:
            break

    report.converged = not has_placeholders(source, delimiter)
    if not report.converged:
        logger.warning(
            f"Group references still unresolved after {report.rounds_run} rounds; "
            "consider raising group_ref_rounds"
        )
    return source, report
