"""Match example documents against the resolved bitmap.

Every node of every example document gets a path built from the local names
of itself and its ancestors (``/Root/Child/Leaf``; namespace URIs and prefixes
are dropped). A schema path is covered by a document when it occurs in one of
the document's node paths on segment boundaries, see
:func:`xsd_coverage.subpath.full_subpath`. Schema paths are therefore matched
anywhere inside a document, not only from its root.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple, Union

from .config import CoverageConfig
from .errors import InputNotFoundError
from .models import DELIMITER, Bitmap, iter_paths
from .subpath import full_subpath

logger = logging.getLogger(__name__)


@dataclass
class CoverageResult:
    """Documents seen by a coverage check.

    Attributes:
        checked: Canonical paths of documents that were matched.
        ignored: Canonical paths of files skipped (other extensions or
            malformed documents).
        matches: Number of (document, schema path) pairs recorded.
    """

    checked: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    matches: int = 0


def local_name(tag: str) -> str:
    """Strip ``{namespace}`` and ``prefix:`` parts from an element or attribute name."""
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag


def iter_files(folder: Path) -> Iterator[Path]:
    """Yield files below ``folder`` depth-first in sorted order."""
    for entry in sorted(folder.iterdir()):
        if entry.is_dir():
            yield from iter_files(entry)
        elif entry.is_file():
            yield entry


class CoverageChecker:
    """Record, per schema path, the example documents that exercise it.

    The covering sets of ``bitmap`` are updated in place; paths are never
    added or removed.
    """

    def __init__(
        self,
        bitmap: Bitmap,
        config: Optional[CoverageConfig] = None,
        delimiter: str = DELIMITER,
    ) -> None:
        self.bitmap = bitmap
        self.config = config or CoverageConfig()
        self.delimiter = delimiter
        self._extensions = {ext.lower().lstrip(".") for ext in self.config.example_extensions}

    def is_example(self, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in self._extensions

    def check_folder(self, folder: Union[str, Path]) -> CoverageResult:
        """Check every example document below ``folder``.

        Raises:
            InputNotFoundError: If ``folder`` is not an existing directory.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise InputNotFoundError(f"Example folder does not exist: {folder}")

        result = CoverageResult()
        for file_path in iter_files(folder):
            document_id = str(file_path.resolve())
            if not self.is_example(file_path):
                result.ignored.append(document_id)
                continue
            try:
                matches = self.check_document(file_path)
            except ET.ParseError as exc:
                logger.warning(f"Skipping malformed example {document_id}: {exc}")
                result.ignored.append(document_id)
                continue
            result.checked.append(document_id)
            result.matches += matches

        logger.info(
            f"Checked {len(result.checked)} example documents, "
            f"ignored {len(result.ignored)} files"
        )
        return result

    def check_document(self, file_path: Union[str, Path]) -> int:
        """Match one document; returns the number of schema paths it covers.

        Raises:
            ET.ParseError: If the document is not well-formed.
        """
        file_path = Path(file_path)
        document_id = str(file_path.resolve())
        logger.debug(f"Checking {document_id}")
        root = ET.parse(str(file_path)).getroot()

        entries: List[Tuple[str, Set[str]]] = [
            (path, covering) for _, path, covering in iter_paths(self.bitmap)
        ]
        covered: Set[int] = set()
        seen: Set[str] = set()
        for node_path in self._node_paths(root, ""):
            if node_path in seen:
                continue
            seen.add(node_path)
            for index, (schema_path, covering) in enumerate(entries):
                if full_subpath(node_path, schema_path, self.delimiter):
                    covering.add(document_id)
                    covered.add(index)
        return len(covered)

    def _node_paths(self, node: ET.Element, parent: str) -> Iterator[str]:
        if not isinstance(node.tag, str):
            return
        path = f"{parent}{self.delimiter}{local_name(node.tag)}"
        yield path
        if self.config.match_attributes:
            for attribute in node.attrib:
                yield f"{path}{self.delimiter}{local_name(attribute)}"
        for child in node:
            yield from self._node_paths(child, path)
