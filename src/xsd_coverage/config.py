"""Run configuration for the coverage checker.

Configuration is a plain dataclass so it can be built in tests without any
environment. :meth:`CoverageConfig.from_env` layers overrides from the
``XSD_COVERAGE_CONFIG`` environment variable on top of the defaults using the
same ``key=value`` comma-separated format the CLI accepts through the shell::

    XSD_COVERAGE_CONFIG="group_ref_rounds=5,match_attributes=true" xsd-coverage ...

Keys starting with ``max_`` or ending with ``_rounds`` are parsed as integers,
``cache_ttl`` as a float, every other known key as a boolean. Unknown keys are
ignored.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

CONFIG_ENV_VAR = "XSD_COVERAGE_CONFIG"


@dataclass
class CoverageConfig:
    """Configuration for bitmap generation, resolution and coverage checking.

    Args:
        group_ref_rounds: Maximum number of group reference resolution rounds.
            Three rounds reach a fixed point for realistically nested schemas;
            resolution stops early once a round changes nothing.
        ignored_namespaces: Attribute namespaces that are never recorded as
            paths (built-in vocabularies such as ``xml:lang``).
        max_depth: Hard limit on schema descent depth, guarding pathological
            nesting that the recursion guard does not catch.
        match_attributes: When True, example document attributes take part in
            the coverage check as leaf nodes below their element.
        truncate_to_root: Keep only the root schema file's paths in the final
            bitmap.
        build_dependency_graph: Build the include/import dependency graph and
            report circular dependencies.
        example_extensions: File extensions (without dot, case-insensitive)
            treated as example documents.
        cache_ttl: Lifetime in seconds of parsed schema documents in the cache.
    """

    group_ref_rounds: int = 3
    ignored_namespaces: FrozenSet[str] = field(
        default_factory=lambda: frozenset({XML_NAMESPACE})
    )
    max_depth: int = 256
    match_attributes: bool = False
    truncate_to_root: bool = False
    build_dependency_graph: bool = False
    example_extensions: Tuple[str, ...] = ("xml",)
    cache_ttl: float = 3600.0

    @classmethod
    def from_env(cls, value: Optional[str] = None) -> "CoverageConfig":
        """Build a configuration from defaults plus environment overrides.

        Args:
            value: Explicit override string; defaults to the content of the
                ``XSD_COVERAGE_CONFIG`` environment variable.

        Returns:
            A new :class:`CoverageConfig`.

        Raises:
            ValueError: If a numeric key carries a non-numeric value.
        """
        config = cls()
        config_str = os.getenv(CONFIG_ENV_VAR, "") if value is None else value
        for pair in config_str.split(","):
            if "=" not in pair:
                continue
            key, raw = pair.split("=", 1)
            key = key.strip()
            raw = raw.strip()
            if not hasattr(config, key):
                continue
            if key.startswith("max_") or key.endswith("_rounds"):
                setattr(config, key, int(raw))
            elif key == "cache_ttl":
                setattr(config, key, float(raw))
            elif key in ("ignored_namespaces", "example_extensions"):
                items = [item.strip() for item in raw.split("|") if item.strip()]
                setattr(
                    config,
                    key,
                    frozenset(items) if key == "ignored_namespaces" else tuple(items),
                )
            else:
                setattr(config, key, raw.lower() == "true")
        return config
