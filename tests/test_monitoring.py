"""Tests for the run monitor."""

import json

import pytest

from xsd_coverage.monitoring import get_monitor, initialize_monitor


def test_stage_records_timing_and_items(fresh_monitor):
    with fresh_monitor.stage("generate") as stage:
        stage.items = 12
    with fresh_monitor.stage("generate") as stage:
        stage.items = 7

    metrics = fresh_monitor.stage_metrics["generate"]
    assert metrics.calls == 2
    assert metrics.items == 7
    assert metrics.failures == 0
    assert metrics.total_time >= metrics.last_time >= 0


def test_stage_counts_failures_and_reraises(fresh_monitor):
    with pytest.raises(RuntimeError):
        with fresh_monitor.stage("coverage"):
            raise RuntimeError("boom")

    metrics = fresh_monitor.stage_metrics["coverage"]
    assert metrics.calls == 1
    assert metrics.failures == 1


def test_cache_metrics(fresh_monitor):
    fresh_monitor.record_cache_hit()
    fresh_monitor.record_cache_hit()
    fresh_monitor.record_cache_miss()

    summary = fresh_monitor.get_performance_summary()["cache"]
    assert summary["hits"] == 2
    assert summary["misses"] == 1
    assert summary["total_requests"] == 3
    assert summary["hit_rate"] == pytest.approx(66.67)


def test_system_sample(fresh_monitor):
    system = fresh_monitor.sample_system()
    assert system.memory_usage_mb > 0
    assert system.peak_memory_mb >= system.memory_usage_mb


def test_export_metrics(tmp_path, fresh_monitor):
    with fresh_monitor.stage("resolve") as stage:
        stage.items = 3

    output = tmp_path / "metrics.json"
    fresh_monitor.export_metrics(output)

    data = json.loads(output.read_text())
    assert "export_time" in data
    assert data["summary"]["stages"]["resolve"]["items"] == 3
    assert data["summary"]["system"]["memory_usage_mb"] > 0


def test_reset_metrics(fresh_monitor):
    with fresh_monitor.stage("generate"):
        pass
    fresh_monitor.record_cache_miss()
    fresh_monitor.reset_metrics()

    assert fresh_monitor.stage_metrics == {}
    assert fresh_monitor.cache_metrics.misses == 0


def test_global_monitor(fresh_monitor):
    assert get_monitor() is fresh_monitor
    replaced = initialize_monitor()
    assert replaced is not fresh_monitor
    assert get_monitor() is replaced
