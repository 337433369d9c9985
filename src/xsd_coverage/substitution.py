"""Substitution group expansion.

An element declared with ``substitutionGroup="Head"`` may appear wherever
``Head`` is allowed. After group references are resolved, every path that
ends at a head element gets a copy of each member's subtree attached after
the head's prefix::

    head AbstractX, member ConcreteY
    /Root/AbstractX          ->  kept
    /Other/ConcreteY/Child   ->  adds /Root/ConcreteY/Child

Unlike group resolution the member's own name is kept in the new paths. The
expansion is a single pass over a read-only source; new paths go into a deep
copy.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .models import (
    DELIMITER,
    Bitmap,
    SubstitutionGroupRegistry,
    add_path,
    deep_copy_bitmap,
)
from .subpath import ends_at_segment, rooted_remainder

logger = logging.getLogger(__name__)


def gather_member_paths(
    bitmap: Bitmap, member: str, delimiter: str = DELIMITER
) -> List[str]:
    """Return every distinct path suffix starting at the segment ``member``."""
    found = set()
    for paths in bitmap.values():
        if paths is None:
            continue
        for path in paths:
            remainder = rooted_remainder(path, member, delimiter)
            if remainder is not None:
                found.add(remainder)
    return sorted(found)


def expand_substitution_groups(
    bitmap: Bitmap,
    registry: SubstitutionGroupRegistry,
    root_file: Optional[str] = None,
    delimiter: str = DELIMITER,
) -> Bitmap:
    """Add member paths below every occurrence of a substitution group head.

    Args:
        bitmap: Resolved bitmap; left unchanged.
        registry: Heads and members collected by the path generator.
        root_file: When given, only this file's entry is returned.
        delimiter: Path segment delimiter.

    Returns:
        The expanded bitmap.
    """
    result = deep_copy_bitmap(bitmap)
    heads = registry.heads()
    gathered: Dict[str, List[str]] = {}
    added = 0

    for file_id, paths in bitmap.items():
        if paths is None:
            continue
        for path in paths:
            for head in heads:
                if not ends_at_segment(path, head, delimiter):
                    continue
                prefix = path[: -len(f"{delimiter}{head}")]
                for member in registry.members(head):
                    if member not in gathered:
                        gathered[member] = gather_member_paths(bitmap, member, delimiter)
                        if not gathered[member]:
                            logger.debug(f"Substitution member {member} of {head} has no paths")
                    for suffix in gathered[member]:
                        new_path = f"{prefix}{suffix}"
                        if new_path not in result[file_id]:
                            add_path(result, file_id, new_path)
                            added += 1

    logger.info(f"Substitution groups: {len(heads)} heads, {added} paths added")

    if root_file is not None:
        if root_file not in result:
            logger.warning(f"Root file {root_file} not in bitmap, truncation yields no paths")
        return {root_file: result.get(root_file)}
    return result
