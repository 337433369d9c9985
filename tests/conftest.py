"""Shared fixtures: inline schemas and example documents written to tmp_path."""

from pathlib import Path

import pytest

from xsd_coverage.cache import get_cache_instance
from xsd_coverage.monitoring import initialize_monitor

XS_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"{attributes}>\n'
)


def schema(body: str, attributes: str = "") -> str:
    """Wrap ``body`` in an ``xs:schema`` root element."""
    return XS_HEADER.format(attributes=attributes) + body + "\n</xs:schema>\n"


@pytest.fixture(autouse=True)
def fresh_monitor():
    """Give every test its own run monitor."""
    yield initialize_monitor()


@pytest.fixture(autouse=True)
def empty_schema_cache():
    """Start every test with an empty process-wide schema cache."""
    cache = get_cache_instance()
    cache.clear()
    yield cache
    cache.clear()


@pytest.fixture
def write_file(tmp_path):
    """Write ``content`` to ``tmp_path / relative`` and return the path."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
