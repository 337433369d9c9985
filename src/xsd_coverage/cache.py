"""Caching layer for parsed schema documents.

Provides:
    * In-memory dictionary cache with TTL + file mtime staleness checks.
    * Lightweight statistics + integration hooks for the run monitor.

Large schema sets include the same files from many places, and the optional
dependency graph walks the same files as the path generator. Every
:class:`~xsd_coverage.schema_model.SchemaCollection` built by the pipeline
reads through the process-wide cache (:func:`get_cache_instance`), so a file
is parsed once per process unless it changes on disk.

Invalidation rules:
    1. Deterministic keys: cache keys are md5 hashes of argument tuples.
    2. An entry expires after its TTL.
    3. An entry stored with a source file is dropped as soon as that file's
       modification time moves past the one recorded at ``set`` time.

Quick example::

    from xsd_coverage.cache import SchemaCache
    cache = SchemaCache(default_ttl=5)
    key = cache._make_key('xsd', '/path/to/file.xsd')
    cache.set(key, document, file_path=Path('/path/to/file.xsd'))
    assert cache.get(key, Path('/path/to/file.xsd')) is document
"""

from __future__ import annotations

import hashlib
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .monitoring import RunMonitor, get_monitor


@dataclass
class CacheEntry:
    """Cached value with its lifetime and source file modification time."""

    data: Any
    timestamp: float = field(default_factory=time.time)
    ttl: float = 3600.0
    file_mtime: float = 0.0

    def is_expired(self) -> bool:
        return time.time() - self.timestamp > self.ttl

    def is_stale(self, file_path: Path) -> bool:
        """True if ``file_path`` is gone or was modified after caching."""
        if not file_path.exists():
            return True
        return file_path.stat().st_mtime > self.file_mtime


class SchemaCache:
    """In-memory cache for parsed schema documents.

    Notes:
        * Single-thread oriented, like the rest of a coverage run.
        * Memory footprint estimation is approximate (shallow object sizes).
        * Metrics go to whatever :func:`get_monitor` returns at call time, so
          a monitor re-initialized by the CLI still sees cache traffic.
    """

    def __init__(self, default_ttl: float = 3600.0, enable_monitoring: bool = True):
        self.default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self.enable_monitoring = enable_monitoring

    @property
    def _monitor(self) -> Optional[RunMonitor]:
        return get_monitor() if self.enable_monitoring else None

    def _make_key(self, *args) -> str:
        """Create cache key from arguments."""
        return hashlib.md5(str(args).encode()).hexdigest()

    def get(self, key: str, file_path: Optional[Path] = None) -> Optional[Any]:
        """Return the cached value for ``key``, or None.

        Args:
            key: Opaque cache key (md5 hex string).
            file_path: Source file of the entry; when given, an entry older
                than the file's current modification time is dropped.

        Returns:
            The cached value, or None when absent, expired or stale.
        """
        started = time.time()
        monitor = self._monitor
        entry = self._cache.get(key)

        evicted = False
        if entry is not None and (
            entry.is_expired() or (file_path is not None and entry.is_stale(file_path))
        ):
            self.invalidate(key)
            entry = None
            evicted = True

        if monitor:
            elapsed = time.time() - started
            if entry is None:
                monitor.record_cache_miss(elapsed)
                if evicted:
                    monitor.record_cache_eviction()
            else:
                monitor.record_cache_hit(elapsed)

        return entry.data if entry is not None else None

    def set(
        self,
        key: str,
        data: Any,
        ttl: Optional[float] = None,
        file_path: Optional[Path] = None,
    ) -> None:
        """Store ``data`` under ``key``.

        Args:
            key: Cache key.
            data: Arbitrary Python object (stored as is, not pickled).
            ttl: Time-to-live override in seconds.
            file_path: Source file whose modification time is recorded for
                staleness checks.
        """
        file_mtime = 0.0
        if file_path is not None and file_path.exists():
            file_mtime = file_path.stat().st_mtime

        self._cache[key] = CacheEntry(
            data=data, ttl=ttl or self.default_ttl, file_mtime=file_mtime
        )

        monitor = self._monitor
        if monitor:
            monitor.update_cache_size(len(self._cache), self._estimate_memory_usage())

    def invalidate(self, key: str) -> None:
        """Remove specific entry from cache."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def _estimate_memory_usage(self) -> float:
        """Estimate memory usage of cache in MB."""
        total_size = sys.getsizeof(self._cache)
        for key, entry in self._cache.items():
            total_size += sys.getsizeof(key)
            total_size += sys.getsizeof(entry)
            total_size += sys.getsizeof(entry.data)
        return total_size / (1024 * 1024)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get current cache statistics."""
        return {
            "cache_size": len(self._cache),
            "memory_usage_mb": self._estimate_memory_usage(),
            "default_ttl": self.default_ttl,
            "monitoring_enabled": self.enable_monitoring,
        }


# Global cache instance
_schema_cache: Optional[SchemaCache] = None


def get_cache_instance(default_ttl: Optional[float] = None) -> SchemaCache:
    """Return (and lazily create) the process-wide schema cache.

    Args:
        default_ttl: Lifetime for new entries; updates the shared instance
            when given.
    """
    global _schema_cache
    if _schema_cache is None:
        _schema_cache = SchemaCache()
    if default_ttl is not None:
        _schema_cache.default_ttl = default_ttl
    return _schema_cache
