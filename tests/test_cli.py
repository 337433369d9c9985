"""Tests for the command line interface."""

import json

import pytest

from conftest import schema
from xsd_coverage.cli import build_parser, main
from xsd_coverage.config import CONFIG_ENV_VAR
from xsd_coverage.generator import root_file_id
from xsd_coverage.monitoring import get_monitor

ROOT_SCHEMA = schema("""
    <xs:include schemaLocation="types.xsd"/>
    <xs:element name="Root">
        <xs:complexType>
            <xs:sequence>
                <xs:element name="Name" type="xs:string"/>
            </xs:sequence>
        </xs:complexType>
    </xs:element>
""")

TYPES_SCHEMA = schema('<xs:element name="Extra" type="xs:string"/>')


@pytest.fixture
def project(tmp_path, write_file, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    write_file("xsd/root.xsd", ROOT_SCHEMA)
    write_file("xsd/types.xsd", TYPES_SCHEMA)
    write_file("examples/a.xml", "<Root><Name>x</Name></Root>")
    return tmp_path


def base_args(project):
    return [
        "--xsd", str(project / "xsd"),
        "--main", "root.xsd",
        "--xml", str(project / "examples"),
    ]


def test_writes_report(project, capsys):
    out = project / "coverage.csv"
    assert main(base_args(project) + ["--out", str(out)]) == 0

    lines = out.read_text(encoding="utf-8").splitlines()
    root_id = root_file_id(project / "xsd", "root.xsd")
    types_id = root_file_id(project / "xsd", "types.xsd")
    example = str((project / "examples" / "a.xml").resolve())
    assert lines[0] == "File;Type;Pseudo_path;Covering_examples"
    assert f"{root_id};element;/Root/Name;[{example}]" in lines
    assert f"{types_id};element;/Extra;[]" in lines

    printed = capsys.readouterr().out
    assert "✓ Wrote coverage report to:" in printed
    assert "2/3 schema paths covered (66.67%) by 1 examples" in printed


def test_truncate_keeps_root_rows_only(project):
    out = project / "coverage.csv"
    assert main(base_args(project) + ["--out", str(out), "--truncate"]) == 0

    root_id = root_file_id(project / "xsd", "root.xsd")
    rows = out.read_text(encoding="utf-8").splitlines()[1:]
    assert rows
    assert all(row.startswith(root_id + ";") for row in rows)


def test_summary_and_metrics(project):
    summary_path = project / "summary.json"
    metrics_path = project / "metrics.json"
    args = base_args(project) + [
        "--out", str(project / "coverage.csv"),
        "--summary-json", str(summary_path),
        "--metrics-out", str(metrics_path),
        "--dependency-graph",
    ]
    assert main(args) == 0

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["total_paths"] == 3
    assert summary["documents_checked"] == 1
    assert summary["resolution"]["converged"] is True

    metrics = json.loads(metrics_path.read_text())["summary"]
    assert {"generate", "resolve", "substitute", "coverage", "report"} <= set(metrics["stages"])
    assert metrics["cache"]["hits"] > 0


def test_missing_schema_fails(project, capsys):
    args = ["--xsd", str(project / "xsd"), "--main", "missing.xsd"]
    assert main(args) == 1
    assert "✗" in capsys.readouterr().err


def test_unwritable_report_fails_before_the_run(project, capsys):
    args = base_args(project) + ["--out", str(project / "nowhere" / "coverage.csv")]
    assert main(args) == 1

    assert "generate" not in get_monitor().stage_metrics
    assert "Cannot write to" in capsys.readouterr().err


def test_unwritable_summary_fails_before_the_run(project):
    out = project / "coverage.csv"
    args = base_args(project) + [
        "--out", str(out),
        "--summary-json", str(project / "nowhere" / "summary.json"),
    ]
    assert main(args) == 1
    assert out.read_text(encoding="utf-8") == ""


def test_no_inputs_is_an_empty_run(monkeypatch, capsys):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert main([]) == 0
    assert "0/0 schema paths covered" in capsys.readouterr().out


def test_invalid_environment_config(monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, "group_ref_rounds=many")
    assert main([]) == 1


def test_negative_rounds_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--rounds", "-1"])
