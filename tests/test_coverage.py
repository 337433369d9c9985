"""Tests for the coverage check over example documents."""

import pytest

from conftest import schema
from xsd_coverage.config import CoverageConfig
from xsd_coverage.coverage import CoverageChecker, local_name
from xsd_coverage.errors import InputNotFoundError
from xsd_coverage.generator import root_file_id
from xsd_coverage.pipeline import run_coverage

ROOT_NAME_SCHEMA = schema("""
    <xs:element name="Root">
        <xs:complexType>
            <xs:sequence>
                <xs:element name="Name" type="xs:string"/>
            </xs:sequence>
        </xs:complexType>
    </xs:element>
""")


def test_end_to_end_single_covering_document(tmp_path, write_file):
    write_file("xsd/root.xsd", ROOT_NAME_SCHEMA)
    covering = write_file("examples/a.xml", "<Root><Name>x</Name></Root>")
    write_file("examples/b.xml", "<Other><Thing/></Other>")

    run = run_coverage(tmp_path / "xsd", "root.xsd", tmp_path / "examples")

    paths = run.bitmap[root_file_id(tmp_path / "xsd", "root.xsd")]
    assert paths["/Root/Name"] == {str(covering.resolve())}
    assert paths["/Root"] == {str(covering.resolve())}
    assert len(run.result.checked) == 2


def test_namespaces_and_prefixes_are_stripped(tmp_path, write_file):
    write_file(
        "examples/ns.xml",
        '<ns:Root xmlns:ns="urn:example"><ns:Name>x</ns:Name></ns:Root>',
    )
    bitmap = {"a.xsd": {"/Root/Name": set()}}
    CoverageChecker(bitmap).check_folder(tmp_path / "examples")
    assert bitmap["a.xsd"]["/Root/Name"] == {str((tmp_path / "examples" / "ns.xml").resolve())}


def test_schema_paths_match_below_the_document_root(tmp_path, write_file):
    doc = write_file("examples/deep.xml", "<Envelope><Body><Name/></Body></Envelope>")
    bitmap = {"a.xsd": {"/Name": set(), "/Body/Name": set(), "/Envelope/Name": set()}}
    CoverageChecker(bitmap).check_folder(tmp_path / "examples")

    doc_id = str(doc.resolve())
    assert bitmap["a.xsd"]["/Name"] == {doc_id}
    assert bitmap["a.xsd"]["/Body/Name"] == {doc_id}
    assert bitmap["a.xsd"]["/Envelope/Name"] == set()


def test_folder_walk_is_recursive_and_filters_extensions(tmp_path, write_file):
    write_file("examples/sub/nested.xml", "<Root/>")
    write_file("examples/UPPER.XML", "<Root/>")
    readme = write_file("examples/readme.txt", "not xml")
    bitmap = {"a.xsd": {"/Root": set()}}

    result = CoverageChecker(bitmap).check_folder(tmp_path / "examples")

    assert len(result.checked) == 2
    assert result.ignored == [str(readme.resolve())]
    assert len(bitmap["a.xsd"]["/Root"]) == 2


def test_malformed_documents_are_ignored(tmp_path, write_file):
    bad = write_file("examples/bad.xml", "<Root><Name></Root>")
    good = write_file("examples/good.xml", "<Root/>")
    bitmap = {"a.xsd": {"/Root": set()}}

    result = CoverageChecker(bitmap).check_folder(tmp_path / "examples")

    assert result.checked == [str(good.resolve())]
    assert result.ignored == [str(bad.resolve())]
    assert bitmap["a.xsd"]["/Root"] == {str(good.resolve())}


def test_attributes_only_match_when_enabled(tmp_path, write_file):
    write_file("examples/doc.xml", '<Root version="1"/>')

    bitmap = {"a.xsd": {"/Root/version": set()}}
    CoverageChecker(bitmap).check_folder(tmp_path / "examples")
    assert bitmap["a.xsd"]["/Root/version"] == set()

    config = CoverageConfig(match_attributes=True)
    CoverageChecker(bitmap, config).check_folder(tmp_path / "examples")
    assert len(bitmap["a.xsd"]["/Root/version"]) == 1


def test_absent_marker_entries_are_skipped(tmp_path, write_file):
    write_file("examples/doc.xml", "<Root/>")
    bitmap = {"a.xsd": None, "b.xsd": {"/Root": set()}}
    result = CoverageChecker(bitmap).check_folder(tmp_path / "examples")
    assert bitmap["a.xsd"] is None
    assert result.matches == 1


def test_missing_example_folder(tmp_path):
    with pytest.raises(InputNotFoundError):
        CoverageChecker({}).check_folder(tmp_path / "nowhere")


def test_local_name():
    assert local_name("{urn:example}Root") == "Root"
    assert local_name("ns:Root") == "Root"
    assert local_name("Root") == "Root"
