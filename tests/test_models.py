"""Tests for bitmap helpers and the substitution group registry."""

from xsd_coverage.models import (
    SubstitutionGroupRegistry,
    add_path,
    bitmap_signature,
    count_paths,
    deep_copy_bitmap,
    group_ref_marker,
    iter_paths,
    mark_discovered,
)


def test_add_path_replaces_absent_marker():
    bitmap = {"a.xsd": None}
    add_path(bitmap, "a.xsd", "/Root")
    assert bitmap == {"a.xsd": {"/Root": set()}}


def test_mark_discovered_only_once():
    bitmap = {}
    assert mark_discovered(bitmap, "a.xsd") is True
    add_path(bitmap, "a.xsd", "/Root")
    assert mark_discovered(bitmap, "a.xsd") is False
    assert bitmap["a.xsd"] == {"/Root": set()}


def test_deep_copy_isolation():
    """Writes to the copy are never visible through the original."""
    original = {
        "a.xsd": {"/Root": {"doc1.xml"}, "/Root/Name": set()},
        "b.xsd": None,
    }
    copy = deep_copy_bitmap(original)

    copy["a.xsd"]["/Root"].add("doc2.xml")
    copy["a.xsd"].pop("/Root/Name")
    copy["a.xsd"]["/Root/New"] = set()
    copy["b.xsd"] = {"/Other": set()}

    assert original == {
        "a.xsd": {"/Root": {"doc1.xml"}, "/Root/Name": set()},
        "b.xsd": None,
    }


def test_deep_copy_while_iterating_source():
    source = {"a.xsd": {f"/P{i}": set() for i in range(5)}}
    target = deep_copy_bitmap(source)
    seen = []
    for path in source["a.xsd"]:
        seen.append(path)
        target["a.xsd"].pop(path)
        target["a.xsd"][path + "/Child"] = set()
    assert sorted(seen) == [f"/P{i}" for i in range(5)]
    assert len(source["a.xsd"]) == 5


def test_iteration_and_counting_skip_absent_marker():
    bitmap = {"a.xsd": {"/A": set(), "/A/B": {"x.xml"}}, "b.xsd": None}
    assert sorted((f, p) for f, p, _ in iter_paths(bitmap)) == [
        ("a.xsd", "/A"),
        ("a.xsd", "/A/B"),
    ]
    assert count_paths(bitmap) == 2
    assert bitmap_signature(bitmap) == {"a.xsd": frozenset({"/A", "/A/B"}), "b.xsd": None}


def test_group_ref_marker():
    assert group_ref_marker() == "/groupRef/"
    assert group_ref_marker(".") == ".groupRef."


def test_substitution_group_registry():
    registry = SubstitutionGroupRegistry()
    registry.register("AbstractX", "ConcreteZ")
    registry.register("AbstractX", "ConcreteY")
    registry.register("AbstractX", "ConcreteY")
    registry.register("Head", "Member")

    assert registry.heads() == ["AbstractX", "Head"]
    assert registry.members("AbstractX") == ["ConcreteY", "ConcreteZ"]
    assert registry.members("Unknown") == []
    assert "Head" in registry
    assert len(registry) == 2
