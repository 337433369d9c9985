"""Include/import dependency graph of a schema set.

A diagnostic aid, disabled by default: large schema sets tend to include
each other in circles, which is legal XSD but makes it hard to see which file
owns a declaration. The graph has one vertex per schema file and an edge from
each file to every file it includes, imports or redefines. A vertex reached
again while it is still an ancestor of the current file is flagged as a
circular dependency.

Example:
        from pathlib import Path
        from xsd_coverage.dependency_graph import build_dependency_graph
        from xsd_coverage.schema_model import SchemaCollection

        graph = build_dependency_graph(SchemaCollection(), Path("xsd"), "root.xsd")
        for vertex in graph.circular_vertices():
                print(vertex.name)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .errors import InputNotFoundError
from .schema_model import SchemaCollection, is_remote_location

logger = logging.getLogger(__name__)


@dataclass
class SchemaVertex:
    """One schema file in the dependency graph.

    Attributes:
        unique_id: Canonical file path.
        name: File name, for display.
        circular_dependency: True once the file was found on a cycle.
    """

    unique_id: str
    name: str
    circular_dependency: bool = False


@dataclass
class DependencyGraph:
    vertices: Dict[str, SchemaVertex] = field(default_factory=dict)
    edges: Dict[str, Set[str]] = field(default_factory=dict)

    def add_vertex(
        self, predecessor_id: Optional[str], unique_id: str, name: str
    ) -> bool:
        """Add ``unique_id`` below ``predecessor_id``.

        The first vertex is the root and takes no predecessor. Re-adding a
        known vertex only adds the edge and checks for a cycle.

        Returns:
            True if the vertex was new.

        Raises:
            ValueError: If ``predecessor_id`` is not in the graph (or missing
                for any vertex but the first).
        """
        if not self.vertices:
            self.vertices[unique_id] = SchemaVertex(unique_id, name)
            self.edges[unique_id] = set()
            return True

        if predecessor_id is None or predecessor_id not in self.vertices:
            raise ValueError(f"Unknown predecessor vertex {predecessor_id}")

        self.edges[predecessor_id].add(unique_id)
        if unique_id not in self.vertices:
            self.vertices[unique_id] = SchemaVertex(unique_id, name)
            self.edges[unique_id] = set()
            return True

        if self.reaches(unique_id, predecessor_id):
            self.vertices[unique_id].circular_dependency = True
        return False

    def reaches(self, start: str, goal: str) -> bool:
        """True if ``goal`` can be reached from ``start`` along edges."""
        pending = [start]
        seen: Set[str] = set()
        while pending:
            current = pending.pop()
            if current == goal:
                return True
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.edges.get(current, ()))
        return False

    def circular_vertices(self) -> List[SchemaVertex]:
        return [
            self.vertices[key]
            for key in sorted(self.vertices)
            if self.vertices[key].circular_dependency
        ]


def build_dependency_graph(
    collection: SchemaCollection, folder: Union[str, Path], file_name: str
) -> DependencyGraph:
    """Build the include/import graph rooted at ``folder/file_name``.

    Raises:
        InputNotFoundError: If the root schema or a local include is missing.
    """
    root = Path(folder) / file_name
    if not root.is_file():
        raise InputNotFoundError(f"Schema file does not exist: {root}")

    graph = DependencyGraph()
    canonical = root.resolve()
    graph.add_vertex(None, str(canonical), canonical.name)
    _visit(collection, graph, canonical)

    circular = graph.circular_vertices()
    logger.info(
        f"Dependency graph: {len(graph.vertices)} schema files, "
        f"{len(circular)} circular dependencies"
    )
    return graph


def _visit(collection: SchemaCollection, graph: DependencyGraph, current: Path) -> None:
    document = collection.load(current)
    for external in document.externals():
        location = external.schema_location
        if not location or is_remote_location(location):
            continue
        target = (current.parent / location).resolve()
        if graph.add_vertex(str(current), str(target), target.name):
            _visit(collection, graph, target)
