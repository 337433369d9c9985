"""Core data structures shared by every stage of a coverage run.

The central artifact is the *bitmap*: a mapping from schema file identifier
(canonical file path) to either ``None`` (the absent-marker, "discovered via
include/import but never walked into content") or a mapping from structural
path to the set of example documents covering it::

    {
        "/schemas/root.xsd": {
            "/Root": set(),
            "/Root/Name": {"/examples/a.xml"},
        },
        "/schemas/common.xsd": None,
    }

Paths are plain strings of ``/``-separated segments. During generation the
reserved segment ``groupRef`` followed by a group name marks an unresolved
group reference; the resolver removes these placeholders.

Design notes:
        * Paths stay strings because matching is textual (see
          :mod:`xsd_coverage.subpath`); a structured path type would have to
          reproduce the index-search-then-segment-compare semantics exactly.
        * Stages never mutate the bitmap they read from. Each resolution round
          works on a :func:`deep_copy_bitmap` of its input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

DELIMITER = "/"
GROUP_REF = "groupRef"

PathMap = Dict[str, Set[str]]
Bitmap = Dict[str, Optional[PathMap]]


def group_ref_marker(delimiter: str = DELIMITER) -> str:
    """Return the segment-aligned marker token, e.g. ``/groupRef/``."""
    return f"{delimiter}{GROUP_REF}{delimiter}"


def add_path(bitmap: Bitmap, file_id: str, path: str) -> None:
    """Record ``path`` for ``file_id`` with an empty covering set.

    Replaces the absent-marker with a fresh mapping on first use. Re-adding an
    existing path resets its covering set, which is harmless before the
    coverage check (all sets are empty until then).
    """
    paths = bitmap.get(file_id)
    if paths is None:
        paths = {}
        bitmap[file_id] = paths
    paths[path] = set()


def mark_discovered(bitmap: Bitmap, file_id: str) -> bool:
    """Insert the absent-marker for ``file_id`` unless it is already known.

    Returns:
        True if the file was new, False if it had been discovered before.
    """
    if file_id in bitmap:
        return False
    bitmap[file_id] = None
    return True


def deep_copy_bitmap(bitmap: Bitmap) -> Bitmap:
    """Return a structurally independent copy of ``bitmap``.

    Every per-file mapping and every covering set is copied, so writes to the
    copy can never be observed through the original.
    """
    return {
        file_id: (
            None
            if paths is None
            else {path: set(covering) for path, covering in paths.items()}
        )
        for file_id, paths in bitmap.items()
    }


def iter_paths(bitmap: Bitmap) -> Iterator[Tuple[str, str, Set[str]]]:
    """Yield ``(file_id, path, covering_set)`` for every recorded path."""
    for file_id, paths in bitmap.items():
        if paths is None:
            continue
        for path, covering in paths.items():
            yield file_id, path, covering


def count_paths(bitmap: Bitmap) -> int:
    return sum(len(paths) for paths in bitmap.values() if paths is not None)


def bitmap_signature(bitmap: Bitmap) -> Dict[str, Optional[frozenset]]:
    """Comparable snapshot of the path keys per file (covering sets ignored)."""
    return {
        file_id: None if paths is None else frozenset(paths)
        for file_id, paths in bitmap.items()
    }


@dataclass
class SubstitutionGroupRegistry:
    """Substitution group heads mapped to the element names substituting them.

    Populated once by the path generator and read once by the expander.

    Example:
        >>> registry = SubstitutionGroupRegistry()
        >>> registry.register("AbstractX", "ConcreteY")
        >>> registry.members("AbstractX")
        ['ConcreteY']
    """

    groups: Dict[str, Set[str]] = field(default_factory=dict)

    def register(self, head: str, member: str) -> None:
        self.groups.setdefault(head, set()).add(member)

    def heads(self) -> List[str]:
        return sorted(self.groups)

    def members(self, head: str) -> List[str]:
        return sorted(self.groups.get(head, ()))

    def __len__(self) -> int:
        return len(self.groups)

    def __contains__(self, head: object) -> bool:
        return head in self.groups


@dataclass
class ResolutionReport:
    """Outcome of group reference resolution.

    Attributes:
        rounds_run: Number of rounds actually executed.
        converged: True when a fixed point was reached (a round changed
            nothing, or no resolvable placeholder is left).
        changes_per_round: Paths removed plus paths added in each round.
        anomalies: Paths with more than one group reference marker, kept
            unresolved.
        unresolved: Group names referenced but not found anywhere.
    """

    rounds_run: int = 0
    converged: bool = False
    changes_per_round: List[int] = field(default_factory=list)
    anomalies: Set[str] = field(default_factory=set)
    unresolved: Set[str] = field(default_factory=set)
