"""Typed schema object model parsed from XSD files.

This module turns XML Schema source into a small, closed set of dataclass
node kinds that the path generator dispatches on. It deliberately covers only
what the coverage walk needs:

* ``Element``, ``Attribute``, ``AttributeGroup`` (definition or reference)
* ``Group`` (named definition) and ``GroupRef``
* ``Sequence``, ``Choice``, ``All`` compositors and the ``AnyElement`` /
  ``AnyAttribute`` wildcards
* ``SimpleType``, ``ComplexType`` and the ``Extension`` content model
* ``External`` (``include``, ``import``, ``redefine``)
* ``Unsupported`` for every other construct (restrictions, notations, ...)

References (``ref``, ``type``, ``substitutionGroup``) are kept as
:class:`QName` values and resolved on demand through a
:class:`SchemaCollection`, which loads a root schema together with everything
it includes or imports and indexes the global declarations of all loaded
files.

Typical usage:
        from pathlib import Path
        from xsd_coverage.schema_model import SchemaCollection

        collection = SchemaCollection()
        document = collection.load(Path("xsd/NeTEx_publication.xsd"))
        for item in document.items:
                print(type(item).__name__, getattr(item, "name", None))

Notes:
* Namespace prefixes are resolved with the declarations seen anywhere in the
  file (collected while parsing); ElementTree does not keep per-element
  prefix maps. Schemas that rebind one prefix to different namespaces in
  nested scopes resolve to the first binding.
* Lookups first try the exact namespace and fall back to the local name, so a
  missing or mismatched ``targetNamespace`` still resolves references.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

from .cache import SchemaCache, get_cache_instance
from .config import XML_NAMESPACE
from .errors import InputNotFoundError, SchemaParseError

logger = logging.getLogger(__name__)

XSD_NAMESPACE = "http://www.w3.org/2001/XMLSchema"
XS_NS = "{" + XSD_NAMESPACE + "}"


@dataclass(frozen=True)
class QName:
    namespace: Optional[str]
    local: str

    def __str__(self) -> str:
        return self.local


@dataclass
class SimpleType:
    name: Optional[str] = None


@dataclass
class Attribute:
    name: Optional[str] = None
    ref: Optional[QName] = None
    type_name: Optional[QName] = None
    inline_type: Optional[SimpleType] = None
    namespace: Optional[str] = None


@dataclass
class AnyAttribute:
    pass


@dataclass
class AttributeGroup:
    name: Optional[str] = None
    ref: Optional[QName] = None
    members: List["AttributeMember"] = field(default_factory=list)


@dataclass
class AnyElement:
    pass


@dataclass
class Sequence:
    items: List["ParticleItem"] = field(default_factory=list)


@dataclass
class Choice:
    items: List["ParticleItem"] = field(default_factory=list)


@dataclass
class All:
    items: List["ParticleItem"] = field(default_factory=list)


@dataclass
class GroupRef:
    ref: QName
    particle: Optional["Particle"] = None


@dataclass
class Group:
    name: Optional[str] = None
    particle: Optional["Particle"] = None


@dataclass
class Extension:
    """``simpleContent`` or ``complexContent`` extension.

    Attributes:
        kind: ``"simple"`` or ``"complex"``.
        base: Base type name; carried for reference only, never descended.
    """

    kind: str
    base: Optional[QName] = None
    particle: Optional["Particle"] = None
    attributes: List["AttributeMember"] = field(default_factory=list)


@dataclass
class Unsupported:
    """Construct the walk does not handle; ``tag`` is the local tag name."""

    tag: str
    name: Optional[str] = None


@dataclass
class ComplexType:
    name: Optional[str] = None
    content: Optional[Union[Extension, Unsupported]] = None
    particle: Optional["Particle"] = None
    attributes: List["AttributeMember"] = field(default_factory=list)


@dataclass
class Element:
    name: Optional[str] = None
    ref: Optional[QName] = None
    type_name: Optional[QName] = None
    inline_type: Optional[Union[SimpleType, ComplexType]] = None
    substitution_group: Optional[QName] = None


@dataclass
class External:
    """``include``, ``import`` or ``redefine`` statement."""

    kind: str
    schema_location: Optional[str] = None
    namespace: Optional[str] = None


AttributeMember = Union[Attribute, AttributeGroup, AnyAttribute, Unsupported]
Particle = Union[Sequence, Choice, All, GroupRef, Unsupported]
ParticleItem = Union[Element, Sequence, Choice, All, GroupRef, AnyElement, Unsupported]
SchemaType = Union[SimpleType, ComplexType]
SchemaNode = Union[
    Element,
    Attribute,
    AttributeGroup,
    AnyAttribute,
    Group,
    GroupRef,
    Sequence,
    Choice,
    All,
    AnyElement,
    SimpleType,
    ComplexType,
    Extension,
    External,
    Unsupported,
]


@dataclass
class SchemaDocument:
    """Top-level items of one schema file in document order."""

    path: Path
    target_namespace: Optional[str]
    items: List[SchemaNode] = field(default_factory=list)
    namespaces: Dict[str, str] = field(default_factory=dict)

    def externals(self) -> List[External]:
        return [item for item in self.items if isinstance(item, External)]


def is_remote_location(location: str) -> bool:
    return location.startswith(("http://", "https://", "ftp://"))


def _local_tag(tag: str) -> str:
    return tag.split("}", 1)[1] if "}" in tag else tag


class _SchemaReader:
    """Convert the ElementTree of one XSD file into schema nodes."""

    def __init__(
        self, namespaces: Dict[str, str], target_namespace: Optional[str]
    ) -> None:
        self.namespaces = namespaces
        self.target_namespace = target_namespace

    def qname(self, value: Optional[str]) -> Optional[QName]:
        if not value:
            return None
        if ":" in value:
            prefix, local = value.split(":", 1)
            return QName(self.namespaces.get(prefix), local)
        return QName(self.namespaces.get(""), value)

    def read_items(self, root: ET.Element) -> List[SchemaNode]:
        items: List[SchemaNode] = []
        for child in root:
            if not isinstance(child.tag, str):
                continue  # comments and processing instructions
            tag = _local_tag(child.tag)
            if tag == "annotation":
                continue
            if tag == "element":
                items.append(self.element(child))
            elif tag == "attribute":
                items.append(self.attribute(child, top_level=True))
            elif tag == "attributeGroup":
                items.append(self.attribute_group(child))
            elif tag == "group":
                items.append(self.group(child))
            elif tag == "complexType":
                items.append(self.complex_type(child))
            elif tag == "simpleType":
                items.append(SimpleType(name=child.get("name")))
            elif tag in ("include", "import", "redefine"):
                items.append(
                    External(
                        kind=tag,
                        schema_location=child.get("schemaLocation"),
                        namespace=child.get("namespace"),
                    )
                )
            else:
                items.append(Unsupported(tag=tag, name=child.get("name")))
        return items

    def element(self, node: ET.Element) -> Element:
        inline_type: Optional[SchemaType] = None
        simple = node.find(f"{XS_NS}simpleType")
        complex_ = node.find(f"{XS_NS}complexType")
        if complex_ is not None:
            inline_type = self.complex_type(complex_)
        elif simple is not None:
            inline_type = SimpleType(name=simple.get("name"))
        return Element(
            name=node.get("name"),
            ref=self.qname(node.get("ref")),
            type_name=self.qname(node.get("type")),
            inline_type=inline_type,
            substitution_group=self.qname(node.get("substitutionGroup")),
        )

    def attribute(self, node: ET.Element, top_level: bool = False) -> Attribute:
        simple = node.find(f"{XS_NS}simpleType")
        ref = self.qname(node.get("ref"))
        if ref is not None:
            namespace = ref.namespace
        elif top_level or node.get("form") == "qualified":
            namespace = self.target_namespace
        else:
            namespace = None
        return Attribute(
            name=node.get("name"),
            ref=ref,
            type_name=self.qname(node.get("type")),
            inline_type=SimpleType(name=simple.get("name")) if simple is not None else None,
            namespace=namespace,
        )

    def attribute_members(self, node: ET.Element) -> List[AttributeMember]:
        members: List[AttributeMember] = []
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = _local_tag(child.tag)
            if tag == "attribute":
                members.append(self.attribute(child))
            elif tag == "attributeGroup":
                members.append(self.attribute_group(child))
            elif tag == "anyAttribute":
                members.append(AnyAttribute())
        return members

    def attribute_group(self, node: ET.Element) -> AttributeGroup:
        return AttributeGroup(
            name=node.get("name"),
            ref=self.qname(node.get("ref")),
            members=self.attribute_members(node),
        )

    def particle(self, node: ET.Element) -> Optional[Particle]:
        """Return the first compositor or group reference below ``node``."""
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = _local_tag(child.tag)
            if tag == "sequence":
                return Sequence(items=self.particle_items(child))
            if tag == "choice":
                return Choice(items=self.particle_items(child))
            if tag == "all":
                return All(items=self.particle_items(child))
            if tag == "group":
                return self.group_ref(child)
        return None

    def particle_items(self, node: ET.Element) -> List[ParticleItem]:
        items: List[ParticleItem] = []
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = _local_tag(child.tag)
            if tag == "annotation":
                continue
            if tag == "element":
                items.append(self.element(child))
            elif tag == "sequence":
                items.append(Sequence(items=self.particle_items(child)))
            elif tag == "choice":
                items.append(Choice(items=self.particle_items(child)))
            elif tag == "all":
                items.append(All(items=self.particle_items(child)))
            elif tag == "group":
                items.append(self.group_ref(child))
            elif tag == "any":
                items.append(AnyElement())
            else:
                items.append(Unsupported(tag=tag, name=child.get("name")))
        return items

    def group_ref(self, node: ET.Element) -> Union[GroupRef, Unsupported]:
        ref = self.qname(node.get("ref"))
        if ref is None:
            return Unsupported(tag="group", name=node.get("name"))
        return GroupRef(ref=ref, particle=self.particle(node))

    def group(self, node: ET.Element) -> Group:
        return Group(name=node.get("name"), particle=self.particle(node))

    def complex_type(self, node: ET.Element) -> ComplexType:
        complex_type = ComplexType(name=node.get("name"))
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = _local_tag(child.tag)
            if tag in ("simpleContent", "complexContent"):
                complex_type.content = self.content(child, tag)
                return complex_type
        complex_type.particle = self.particle(node)
        complex_type.attributes = self.attribute_members(node)
        return complex_type

    def content(self, node: ET.Element, tag: str) -> Union[Extension, Unsupported]:
        kind = "simple" if tag == "simpleContent" else "complex"
        extension = node.find(f"{XS_NS}extension")
        if extension is None:
            restriction = node.find(f"{XS_NS}restriction")
            return Unsupported(
                tag=f"{tag}/restriction" if restriction is not None else tag
            )
        return Extension(
            kind=kind,
            base=self.qname(extension.get("base")),
            particle=self.particle(extension) if kind == "complex" else None,
            attributes=self.attribute_members(extension),
        )


def parse_schema_file(path: Path) -> SchemaDocument:
    """Parse one XSD file into a :class:`SchemaDocument`.

    Args:
        path: Schema file location.

    Returns:
        The parsed document; includes/imports are listed but not followed.

    Raises:
        InputNotFoundError: If ``path`` does not exist.
        SchemaParseError: If the file is not well-formed XML.
    """
    path = Path(path)
    if not path.is_file():
        raise InputNotFoundError(f"Schema file does not exist: {path}")

    namespaces: Dict[str, str] = {"xml": XML_NAMESPACE}
    root: Optional[ET.Element] = None
    try:
        for event, item in ET.iterparse(str(path), events=("start", "start-ns")):
            if event == "start-ns":
                prefix, uri = item
                namespaces.setdefault(prefix, uri)
            elif root is None:
                root = item
    except ET.ParseError as exc:
        raise SchemaParseError(f"Could not parse schema {path}: {exc}") from exc

    if root is None or root.tag != f"{XS_NS}schema":
        raise SchemaParseError(f"{path} is not an XML Schema document")

    target_namespace = root.get("targetNamespace")
    reader = _SchemaReader(namespaces, target_namespace)
    return SchemaDocument(
        path=path,
        target_namespace=target_namespace,
        items=reader.read_items(root),
        namespaces=namespaces,
    )


_GLOBAL_KINDS: Tuple[Tuple[type, str], ...] = (
    (Element, "element"),
    (Attribute, "attribute"),
    (AttributeGroup, "attributeGroup"),
    (ComplexType, "type"),
    (SimpleType, "type"),
)


class SchemaCollection:
    """Loaded schema documents plus an index of their global declarations.

    Loading a file also loads every local file it includes, imports or
    redefines, so references can be resolved across the whole schema set
    before any walk starts.

    Args:
        cache: Cache for parsed documents keyed by canonical path; the
            process-wide cache from :func:`get_cache_instance` when omitted.
    """

    def __init__(self, cache: Optional[SchemaCache] = None) -> None:
        self.cache = cache if cache is not None else get_cache_instance()
        self.documents: Dict[str, SchemaDocument] = {}
        self._by_qname: Dict[str, Dict[QName, SchemaNode]] = {}
        self._by_local: Dict[str, Dict[str, SchemaNode]] = {}

    def load(self, path: Path) -> SchemaDocument:
        """Load ``path`` and, transitively, the local files it references.

        Returns:
            The document for ``path``.

        Raises:
            InputNotFoundError: If ``path`` or a referenced local file is missing.
            SchemaParseError: If a file is not well-formed.
        """
        canonical = Path(path).resolve()
        root_document = self._load_one(canonical)
        pending = [(canonical, root_document)]
        seen: Set[str] = {str(canonical)}
        while pending:
            current, document = pending.pop()
            for external in document.externals():
                location = external.schema_location
                if not location or is_remote_location(location):
                    continue
                target = (current.parent / location).resolve()
                if str(target) in seen:
                    continue
                seen.add(str(target))
                pending.append((target, self._load_one(target)))
        return root_document

    def _load_one(self, canonical: Path) -> SchemaDocument:
        key = str(canonical)
        if key in self.documents:
            return self.documents[key]

        cache_key = self.cache._make_key("xsd", key)
        document: Optional[SchemaDocument] = self.cache.get(cache_key, canonical)
        if document is None:
            logger.debug(f"Parsing schema {canonical}")
            document = parse_schema_file(canonical)
            self.cache.set(cache_key, document, file_path=canonical)

        self.documents[key] = document
        self._index(document)
        return document

    def _index(self, document: SchemaDocument) -> None:
        for item in document.items:
            name = getattr(item, "name", None)
            if not name:
                continue
            for node_type, kind in _GLOBAL_KINDS:
                if isinstance(item, node_type):
                    qname = QName(document.target_namespace, name)
                    self._by_qname.setdefault(kind, {}).setdefault(qname, item)
                    self._by_local.setdefault(kind, {}).setdefault(name, item)
                    break

    def _lookup(self, kind: str, qname: QName) -> Optional[SchemaNode]:
        found = self._by_qname.get(kind, {}).get(qname)
        if found is None:
            found = self._by_local.get(kind, {}).get(qname.local)
        return found

    def element(self, qname: QName) -> Optional[Element]:
        return self._lookup("element", qname)  # type: ignore[return-value]

    def attribute(self, qname: QName) -> Optional[Attribute]:
        return self._lookup("attribute", qname)  # type: ignore[return-value]

    def attribute_group(self, qname: QName) -> Optional[AttributeGroup]:
        return self._lookup("attributeGroup", qname)  # type: ignore[return-value]

    def schema_type(self, qname: QName) -> Optional[SchemaType]:
        """Resolve a named type; XSD built-ins resolve to a bare simple type."""
        if qname.namespace == XSD_NAMESPACE:
            return SimpleType(name=qname.local)
        return self._lookup("type", qname)  # type: ignore[return-value]
