"""Turn schema files into the raw path bitmap.

The :class:`PathGenerator` walks every top-level item of a root schema file,
records a path for each named element, attribute, attribute group and group
it meets on the way down, and follows ``include`` / ``import`` / ``redefine``
statements into the referenced files. Each construct kind has its own handler;
kinds without one are logged, counted in :attr:`PathGenerator.diagnostics`
and skipped, so a large schema set always yields a (possibly partial) bitmap.

Path rules in short:

* elements, attributes, attribute groups and top-level groups append their
  name;
* element and attribute references continue with the referenced declaration
  at the current path, so the target's name is appended there;
* type definitions and compositors (sequence, choice, all) never add a
  segment;
* a group reference appends ``groupRef/<name>`` as a placeholder that
  :mod:`xsd_coverage.resolver` replaces later;
* wildcards record the current path unchanged.

Example:
        from pathlib import Path
        from xsd_coverage.generator import PathGenerator
        from xsd_coverage.schema_model import SchemaCollection

        generator = PathGenerator(SchemaCollection())
        bitmap = generator.generate(Path("xsd"), "root.xsd")
        print(generator.registry.heads())
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Set, Union

from .config import CoverageConfig
from .errors import InputNotFoundError
from .models import (
    DELIMITER,
    GROUP_REF,
    Bitmap,
    SubstitutionGroupRegistry,
    add_path,
    count_paths,
    mark_discovered,
)
from .schema_model import (
    All,
    AnyAttribute,
    AnyElement,
    Attribute,
    AttributeGroup,
    Choice,
    ComplexType,
    Element,
    Extension,
    External,
    Group,
    GroupRef,
    QName,
    SchemaCollection,
    SchemaNode,
    Sequence,
    SimpleType,
    is_remote_location,
)

logger = logging.getLogger(__name__)


def root_file_id(folder: Union[str, Path], file_name: str) -> str:
    """Canonical bitmap key of the schema file ``folder/file_name``."""
    return str((Path(folder) / file_name).resolve())


@dataclass
class _Walk:
    """State of the walk through one schema file."""

    file_id: str
    bitmap: Bitmap
    # named types and references currently being descended
    active: Set[str] = field(default_factory=set)


Handler = Callable[[_Walk, str, SchemaNode, int], None]


class PathGenerator:
    """Recursive schema walker producing the raw bitmap.

    Args:
        collection: Loader and global declaration index used to resolve
            ``ref``/``type`` references.
        config: Run configuration (ignored namespaces, depth limit).
        delimiter: Path segment delimiter.

    Attributes:
        registry: Substitution group heads and members found during the walk.
        diagnostics: Counter of skipped construct kinds and guard events.
    """

    def __init__(
        self,
        collection: SchemaCollection,
        config: Optional[CoverageConfig] = None,
        delimiter: str = DELIMITER,
    ) -> None:
        self.collection = collection
        self.config = config or CoverageConfig()
        self.delimiter = delimiter
        self.registry = SubstitutionGroupRegistry()
        self.diagnostics: Counter = Counter()
        self._handlers: Dict[type, Handler] = {
            Element: self._handle_element,
            Attribute: self._handle_attribute,
            AttributeGroup: self._handle_attribute_group,
            AnyAttribute: self._handle_any,
            AnyElement: self._handle_any,
            Group: self._handle_group,
            GroupRef: self._handle_group_ref,
            Sequence: self._handle_compositor,
            Choice: self._handle_compositor,
            All: self._handle_compositor,
            SimpleType: self._handle_simple_type,
            ComplexType: self._handle_complex_type,
            Extension: self._handle_extension,
        }

    def generate(
        self,
        folder: Union[str, Path],
        file_name: str,
        bitmap: Optional[Bitmap] = None,
    ) -> Bitmap:
        """Walk ``folder/file_name`` and everything it includes or imports.

        Args:
            folder: Folder holding the root schema file.
            file_name: Root schema file name (may contain a relative folder).
            bitmap: Bitmap to extend; a new one is created when omitted.

        Returns:
            The bitmap, keyed by canonical schema file path.

        Raises:
            InputNotFoundError: If the root schema or a local include is missing.
            SchemaParseError: If a schema file is not well-formed.
        """
        bitmap = {} if bitmap is None else bitmap
        folder = Path(folder)
        mark_discovered(bitmap, root_file_id(folder, file_name))
        self._walk_file(folder, file_name, bitmap)

        logger.info(
            f"Generated {count_paths(bitmap)} paths across {len(bitmap)} schema files "
            f"({len(self.registry)} substitution group heads)"
        )
        if self.diagnostics:
            logger.info(f"Skipped constructs: {dict(self.diagnostics)}")
        return bitmap

    def _walk_file(self, folder: Path, file_name: str, bitmap: Bitmap) -> None:
        path = folder / file_name
        if not path.is_file():
            raise InputNotFoundError(f"Schema file does not exist: {path}")

        document = self.collection.load(path)
        walk = _Walk(file_id=str(path.resolve()), bitmap=bitmap)
        logger.debug(f"Walking {walk.file_id} ({len(document.items)} top-level items)")

        for item in document.items:
            if isinstance(item, External):
                self._handle_external(folder, item, bitmap)
            else:
                self._dispatch(walk, "", item, 0)

    def _handle_external(self, folder: Path, external: External, bitmap: Bitmap) -> None:
        location = external.schema_location
        if not location:
            logger.debug(
                f"Skipping {external.kind} of namespace {external.namespace} "
                "without schemaLocation"
            )
            self.diagnostics[f"{external.kind}-without-location"] += 1
            return
        if is_remote_location(location):
            logger.info(f"Skipping remote schema location {location}")
            self.diagnostics["remote-location"] += 1
            return

        target = (folder / location).resolve()
        if not mark_discovered(bitmap, str(target)):
            return

        # A location with a folder part moves the base folder along.
        if "/" in location:
            self._walk_file(target.parent, target.name, bitmap)
        else:
            self._walk_file(folder, location, bitmap)

    def _dispatch(self, walk: _Walk, path: str, node: SchemaNode, depth: int) -> None:
        if depth > self.config.max_depth:
            logger.warning(
                f"Maximum depth ({self.config.max_depth}) exceeded at {path} "
                f"in {walk.file_id}"
            )
            self.diagnostics["max-depth"] += 1
            return
        handler = self._handlers.get(type(node), self._handle_unknown)
        handler(walk, path, node, depth)

    def _descend(
        self, walk: _Walk, key: str, path: str, node: SchemaNode, depth: int
    ) -> None:
        """Dispatch into a referenced declaration unless it is already active."""
        if key in walk.active:
            logger.debug(f"Recursive reference {key} at {path}, not descending")
            self.diagnostics["recursion"] += 1
            return
        walk.active.add(key)
        try:
            self._dispatch(walk, path, node, depth + 1)
        finally:
            walk.active.discard(key)

    def _record(self, walk: _Walk, path: str) -> None:
        add_path(walk.bitmap, walk.file_id, path)

    def _unresolved(self, kind: str, qname: QName, path: str) -> None:
        logger.debug(f"Unresolved {kind} reference {qname.local} at {path or '/'}")
        self.diagnostics[f"unresolved-{kind}"] += 1

    @staticmethod
    def _key(kind: str, qname: QName) -> str:
        return f"{kind}:{qname.namespace or ''}:{qname.local}"

    def _handle_element(self, walk: _Walk, path: str, element: Element, depth: int) -> None:
        if element.name:
            path = f"{path}{self.delimiter}{element.name}"
            self._record(walk, path)
            if element.substitution_group is not None:
                self.registry.register(element.substitution_group.local, element.name)

        if element.ref is not None:
            target = self.collection.element(element.ref)
            if target is None:
                self._unresolved("element", element.ref, path)
                return
            self._descend(walk, self._key("element", element.ref), path, target, depth)
        elif element.inline_type is not None:
            self._dispatch(walk, path, element.inline_type, depth + 1)
        elif element.type_name is not None:
            schema_type = self.collection.schema_type(element.type_name)
            if schema_type is None:
                self._unresolved("type", element.type_name, path)
                return
            self._descend(walk, self._key("type", element.type_name), path, schema_type, depth)
        elif not element.name:
            self._handle_unknown(walk, path, element, depth)

    def _handle_attribute(
        self, walk: _Walk, path: str, attribute: Attribute, depth: int
    ) -> None:
        ignored = self.config.ignored_namespaces
        if attribute.ref is not None:
            if attribute.ref.namespace in ignored:
                return
            target = self.collection.attribute(attribute.ref)
            if target is None:
                self._unresolved("attribute", attribute.ref, path)
                return
            self._descend(walk, self._key("attribute", attribute.ref), path, target, depth)
            return

        if not attribute.name:
            self._handle_unknown(walk, path, attribute, depth)
            return
        if attribute.namespace in ignored:
            return
        path = f"{path}{self.delimiter}{attribute.name}"
        self._record(walk, path)

        if attribute.inline_type is not None:
            self._dispatch(walk, path, attribute.inline_type, depth + 1)
        elif attribute.type_name is not None:
            schema_type = self.collection.schema_type(attribute.type_name)
            if isinstance(schema_type, SimpleType):
                self._dispatch(walk, path, schema_type, depth + 1)
            elif schema_type is None:
                self._unresolved("type", attribute.type_name, path)
            else:
                logger.debug(f"Attribute {attribute.name} has non-simple type")
                self.diagnostics["attribute-complex-type"] += 1

    def _handle_attribute_group(
        self, walk: _Walk, path: str, group: AttributeGroup, depth: int
    ) -> None:
        if group.ref is not None:
            target = self.collection.attribute_group(group.ref)
            if target is None:
                self._unresolved("attributeGroup", group.ref, path)
                return
            self._descend(walk, self._key("attributeGroup", group.ref), path, target, depth)
            return

        if group.name:
            path = f"{path}{self.delimiter}{group.name}"
            self._record(walk, path)
        for member in group.members:
            self._dispatch(walk, path, member, depth + 1)

    def _handle_any(
        self, walk: _Walk, path: str, node: Union[AnyElement, AnyAttribute], depth: int
    ) -> None:
        if not path:
            self.diagnostics["top-level-wildcard"] += 1
            return
        self._record(walk, path)

    def _handle_group(self, walk: _Walk, path: str, group: Group, depth: int) -> None:
        if group.name:
            path = f"{path}{self.delimiter}{group.name}"
            self._record(walk, path)
        if group.particle is not None:
            self._dispatch(walk, path, group.particle, depth + 1)

    def _handle_group_ref(self, walk: _Walk, path: str, ref: GroupRef, depth: int) -> None:
        path = f"{path}{self.delimiter}{GROUP_REF}{self.delimiter}{ref.ref.local}"
        self._record(walk, path)
        if ref.particle is not None:
            self._dispatch(walk, path, ref.particle, depth + 1)

    def _handle_compositor(
        self, walk: _Walk, path: str, compositor: Union[Sequence, Choice, All], depth: int
    ) -> None:
        for item in compositor.items:
            self._dispatch(walk, path, item, depth + 1)

    def _handle_simple_type(
        self, walk: _Walk, path: str, simple_type: SimpleType, depth: int
    ) -> None:
        pass  # leaf

    def _handle_complex_type(
        self, walk: _Walk, path: str, complex_type: ComplexType, depth: int
    ) -> None:
        if complex_type.content is not None:
            self._dispatch(walk, path, complex_type.content, depth + 1)
            return
        if complex_type.particle is not None:
            self._dispatch(walk, path, complex_type.particle, depth + 1)
        for member in complex_type.attributes:
            self._dispatch(walk, path, member, depth + 1)

    def _handle_extension(
        self, walk: _Walk, path: str, extension: Extension, depth: int
    ) -> None:
        for member in extension.attributes:
            self._dispatch(walk, path, member, depth + 1)
        if extension.particle is not None:
            self._dispatch(walk, path, extension.particle, depth + 1)

    def _handle_unknown(self, walk: _Walk, path: str, node: SchemaNode, depth: int) -> None:
        kind = getattr(node, "tag", None) or type(node).__name__
        logger.debug(f"Skipping unsupported construct {kind} at {path or '/'} in {walk.file_id}")
        self.diagnostics[kind] += 1
