"""Run monitoring for coverage runs.

The monitor aggregates in-process telemetry so the pipeline stages and the
schema cache can record lightweight events without carrying their own
bookkeeping. Nothing is sent anywhere; the CLI can dump the collected numbers
as JSON with ``--metrics-out``.

Collected domains:
        * Stage timings (bitmap generation, resolution, expansion, coverage
          check, report writing), with call counts and item counts
        * Schema cache performance (hit/miss ratio, evictions, memory footprint)
        * Process snapshot (uptime, resident memory, CPU) sampled via ``psutil``

Example::

        from xsd_coverage.monitoring import get_monitor
        monitor = get_monitor()
        with monitor.stage("generate") as stage:
                bitmap = generator.generate(folder, "root.xsd")
                stage.items = count_paths(bitmap)
        print(monitor.get_performance_summary()["stages"]["generate"]["calls"])  # -> 1

Lifecycle integration:
        * Initialization is lazy via :func:`get_monitor` or explicit via
          :func:`initialize_monitor`.
        * Export with :meth:`RunMonitor.export_metrics`.
        * Reset with :meth:`RunMonitor.reset_metrics` between test cases.
"""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import psutil


@dataclass
class CacheMetrics:
    """Aggregate schema cache metrics.

    Attributes:
        hits: Number of successful cache lookups.
        misses: Number of lookups that fell through to parsing.
        evictions: Entries removed because their TTL expired.
        total_requests: Aggregate hits + misses.
        hit_rate: Rolling hit ratio (0..1) updated per request.
        average_response_time: Mean time for cache operations (seconds).
        cache_size: Current number of entries.
        memory_usage_mb: Approximate memory consumption (MB).
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    total_requests: int = 0
    hit_rate: float = 0.0
    average_response_time: float = 0.0
    cache_size: int = 0
    memory_usage_mb: float = 0.0


@dataclass
class StageMetrics:
    """Aggregated timing for one named pipeline stage.

    Attributes:
        calls: Number of times the stage ran.
        total_time: Cumulative wall-clock time (seconds).
        last_time: Duration of the most recent run (seconds).
        items: Item count reported by the most recent run (paths, documents).
        failures: Runs that ended with an exception.
    """

    calls: int = 0
    total_time: float = 0.0
    last_time: float = 0.0
    items: int = 0
    failures: int = 0


@dataclass
class SystemMetrics:
    uptime_seconds: float = 0.0
    memory_usage_mb: float = 0.0
    peak_memory_mb: float = 0.0
    cpu_usage_percent: float = 0.0


class StageHandle:
    """Mutable handle yielded by :meth:`RunMonitor.stage`; set ``items``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.items = 0


class RunMonitor:
    """Central coordinator for recording and querying run metrics.

    Intended to be shared as a singleton within a process (see
    :func:`get_monitor`). A coverage run is single-threaded, so no locking is
    done.
    """

    def __init__(self) -> None:
        self.start_time = datetime.now()
        self.cache_metrics = CacheMetrics()
        self.stage_metrics: Dict[str, StageMetrics] = {}
        self.system_metrics = SystemMetrics()

    @contextmanager
    def stage(self, name: str) -> Iterator[StageHandle]:
        """Time the enclosed block as stage ``name``.

        Exceptions propagate unchanged; they are counted as failures.
        """
        handle = StageHandle(name)
        metrics = self.stage_metrics.setdefault(name, StageMetrics())
        started = time.perf_counter()
        try:
            yield handle
        except Exception:
            metrics.failures += 1
            raise
        finally:
            elapsed = time.perf_counter() - started
            metrics.calls += 1
            metrics.total_time += elapsed
            metrics.last_time = elapsed
            metrics.items = handle.items
            self.sample_system()

    def record_cache_hit(self, response_time: float = 0.0) -> None:
        self.cache_metrics.hits += 1
        self.cache_metrics.total_requests += 1
        self._update_cache_metrics(response_time)

    def record_cache_miss(self, response_time: float = 0.0) -> None:
        self.cache_metrics.misses += 1
        self.cache_metrics.total_requests += 1
        self._update_cache_metrics(response_time)

    def record_cache_eviction(self) -> None:
        self.cache_metrics.evictions += 1

    def _update_cache_metrics(self, response_time: float) -> None:
        """Update derived cache metrics (hit rate, average response time)."""
        total = self.cache_metrics.total_requests
        if total > 0:
            self.cache_metrics.hit_rate = self.cache_metrics.hits / total

        if response_time > 0:
            current_avg = self.cache_metrics.average_response_time
            self.cache_metrics.average_response_time = (
                current_avg * (total - 1) + response_time
            ) / total

    def update_cache_size(self, cache_size: int, memory_usage_mb: float = 0.0) -> None:
        """Set current cache size and optional memory usage sample."""
        self.cache_metrics.cache_size = cache_size
        self.cache_metrics.memory_usage_mb = memory_usage_mb

    def sample_system(self) -> SystemMetrics:
        """Refresh the process snapshot from ``psutil``."""
        process = psutil.Process()
        memory_mb = process.memory_info().rss / (1024 * 1024)
        self.system_metrics.memory_usage_mb = memory_mb
        self.system_metrics.peak_memory_mb = max(
            self.system_metrics.peak_memory_mb, memory_mb
        )
        self.system_metrics.cpu_usage_percent = process.cpu_percent(interval=None)
        self.system_metrics.uptime_seconds = (
            datetime.now() - self.start_time
        ).total_seconds()
        return self.system_metrics

    def get_performance_summary(self) -> Dict[str, Any]:
        """Return a JSON-ready snapshot of stages, cache and process metrics."""
        return {
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": round(self.system_metrics.uptime_seconds, 3),
            "stages": {
                name: {
                    "calls": metrics.calls,
                    "total_time_ms": round(metrics.total_time * 1000, 2),
                    "last_time_ms": round(metrics.last_time * 1000, 2),
                    "items": metrics.items,
                    "failures": metrics.failures,
                }
                for name, metrics in self.stage_metrics.items()
            },
            "cache": {
                "hit_rate": round(self.cache_metrics.hit_rate * 100, 2),
                "total_requests": self.cache_metrics.total_requests,
                "hits": self.cache_metrics.hits,
                "misses": self.cache_metrics.misses,
                "evictions": self.cache_metrics.evictions,
                "average_response_time_ms": round(
                    self.cache_metrics.average_response_time * 1000, 2
                ),
                "cache_size": self.cache_metrics.cache_size,
                "memory_usage_mb": round(self.cache_metrics.memory_usage_mb, 2),
            },
            "system": {
                "memory_usage_mb": round(self.system_metrics.memory_usage_mb, 2),
                "peak_memory_mb": round(self.system_metrics.peak_memory_mb, 2),
                "cpu_usage_percent": round(self.system_metrics.cpu_usage_percent, 2),
            },
        }

    def export_metrics(self, file_path: Path) -> None:
        """Persist a structured metrics dump to disk.

        Args:
            file_path: Destination path for JSON output.
        """
        self.sample_system()
        metrics_data = {
            "export_time": datetime.now().isoformat(),
            "summary": self.get_performance_summary(),
        }

        with open(file_path, "w") as f:
            json.dump(metrics_data, f, indent=2, default=str)

    def reset_metrics(self) -> None:
        """Reset all counters/state (primarily for tests)."""
        self.cache_metrics = CacheMetrics()
        self.stage_metrics.clear()
        self.system_metrics = SystemMetrics()
        self.start_time = datetime.now()


# Global run monitor instance
_monitor: Optional[RunMonitor] = None


def get_monitor() -> RunMonitor:
    """Return (and lazily initialize) the process-wide run monitor."""
    global _monitor
    if _monitor is None:
        _monitor = RunMonitor()
    return _monitor


def initialize_monitor() -> RunMonitor:
    """Force initialization / re-initialization of the global monitor."""
    global _monitor
    _monitor = RunMonitor()
    return _monitor
