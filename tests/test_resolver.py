"""Tests for group reference resolution."""

import pytest

from xsd_coverage.models import bitmap_signature, deep_copy_bitmap
from xsd_coverage.resolver import gather_group_paths, has_placeholders, resolve_group_refs


def paths(*items):
    return {item: set() for item in items}


NESTED_GROUPS = {
    "root.xsd": paths(
        "/Root",
        "/Root/groupRef/G1",
        "/G1",
        "/G1/A",
        "/G1/groupRef/G2",
        "/G2",
        "/G2/B",
        "/G2/groupRef/G3",
        "/G3",
        "/G3/C",
    )
}


def test_paths_without_marker_are_untouched():
    bitmap = {"a.xsd": paths("/Root", "/Root/Name"), "b.xsd": None}
    resolved, report = resolve_group_refs(bitmap)
    assert resolved == bitmap
    assert report.converged is True
    assert report.changes_per_round == [0]


def test_wrapper_collapse():
    bitmap = {
        "a.xsd": paths("/Wrapper/groupRef/Wrapper"),
        "b.xsd": paths("/Wrapper/Child"),
    }
    resolved, _ = resolve_group_refs(bitmap, rounds=1)
    assert set(resolved["a.xsd"]) == {"/Wrapper"}
    assert set(resolved["b.xsd"]) == {"/Wrapper/Child"}


def test_root_anchor_is_dropped():
    bitmap = {"a.xsd": paths("/groupRef/SomeGroup", "/SomeGroup", "/SomeGroup/X")}
    resolved, _ = resolve_group_refs(bitmap)
    assert set(resolved["a.xsd"]) == {"/SomeGroup", "/SomeGroup/X"}


def test_group_children_are_attached_to_prefix():
    bitmap = {
        "root.xsd": paths("/Root", "/Root/groupRef/Extras"),
        "groups.xsd": paths("/Extras", "/Extras/Note", "/Extras/Note/Text"),
    }
    resolved, report = resolve_group_refs(bitmap)
    assert set(resolved["root.xsd"]) == {"/Root", "/Root/Note", "/Root/Note/Text"}
    assert set(resolved["groups.xsd"]) == {"/Extras", "/Extras/Note", "/Extras/Note/Text"}
    assert report.converged is True


def test_nested_groups_reach_fixed_point():
    resolved, report = resolve_group_refs(NESTED_GROUPS, rounds=3)

    assert set(resolved["root.xsd"]) == {
        "/Root",
        "/Root/A",
        "/Root/B",
        "/Root/C",
        "/G1",
        "/G1/A",
        "/G1/B",
        "/G1/C",
        "/G2",
        "/G2/B",
        "/G2/C",
        "/G3",
        "/G3/C",
    }
    assert report.converged is True
    assert report.rounds_run == 3
    assert report.changes_per_round[-1] == 0


def test_one_more_round_changes_nothing():
    resolved, _ = resolve_group_refs(NESTED_GROUPS, rounds=3)
    again, report = resolve_group_refs(resolved, rounds=1)
    assert bitmap_signature(again) == bitmap_signature(resolved)
    assert report.changes_per_round == [0]


def test_too_few_rounds_is_reported():
    resolved, report = resolve_group_refs(NESTED_GROUPS, rounds=1)
    assert report.converged is False
    assert has_placeholders(resolved)


def test_mutually_recursive_groups_collapse():
    bitmap = {"a.xsd": paths("/G", "/G/groupRef/H", "/H", "/H/groupRef/G")}
    resolved, report = resolve_group_refs(bitmap)
    assert set(resolved["a.xsd"]) == {"/G", "/H"}
    assert report.converged is True


def test_multiple_markers_are_kept_as_anomaly():
    bitmap = {"a.xsd": paths("/A/groupRef/G/groupRef/H", "/G/X")}
    resolved, report = resolve_group_refs(bitmap)
    assert "/A/groupRef/G/groupRef/H" in resolved["a.xsd"]
    assert report.anomalies == {"/A/groupRef/G/groupRef/H"}


def test_unknown_group_is_dropped_and_reported():
    bitmap = {"a.xsd": paths("/Root", "/Root/groupRef/Missing")}
    resolved, report = resolve_group_refs(bitmap)
    assert set(resolved["a.xsd"]) == {"/Root"}
    assert report.unresolved == {"Missing"}


def test_input_bitmap_is_not_modified():
    before = deep_copy_bitmap(NESTED_GROUPS)
    resolve_group_refs(NESTED_GROUPS)
    assert NESTED_GROUPS == before


def test_absent_marker_is_preserved():
    bitmap = {"a.xsd": paths("/Root/groupRef/G", "/G/X"), "b.xsd": None}
    resolved, _ = resolve_group_refs(bitmap)
    assert resolved["b.xsd"] is None
    assert set(resolved["a.xsd"]) == {"/Root/X", "/G/X"}


def test_gather_group_paths_only_takes_paths_rooted_at_the_group():
    bitmap = {
        "a.xsd": paths("/Group/A", "/GroupX/B", "/Other/Group/C", "/Group"),
        "b.xsd": None,
    }
    assert gather_group_paths(bitmap, "/Group") == ["/A"]


def test_element_sharing_group_name_does_not_leak_into_expansion():
    bitmap = {
        "a.xsd": paths("/Root/groupRef/Address", "/Address/Line", "/Person/Address/Street"),
    }
    resolved, report = resolve_group_refs(bitmap)

    assert set(resolved["a.xsd"]) == {"/Root/Line", "/Address/Line", "/Person/Address/Street"}
    assert "/Root/Street" not in resolved["a.xsd"]
    assert report.converged


def test_negative_rounds_rejected():
    with pytest.raises(ValueError):
        resolve_group_refs({}, rounds=-1)
