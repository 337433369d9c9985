"""End-to-end coverage run.

Stages, each timed by the run monitor:

1. ``generate``: walk the root schema into the raw bitmap;
2. ``resolve``: replace group reference placeholders;
3. ``substitute``: expand substitution groups (optionally truncated to the
   root file);
4. ``dependency_graph``: optional include/import graph;
5. ``coverage``: match the example documents.

Stages whose inputs are missing are skipped, so a run without an example
folder still yields the resolved bitmap (every path uncovered).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .cache import get_cache_instance
from .config import CoverageConfig
from .coverage import CoverageChecker, CoverageResult
from .dependency_graph import DependencyGraph, build_dependency_graph
from .generator import PathGenerator, root_file_id
from .models import Bitmap, ResolutionReport, SubstitutionGroupRegistry, count_paths
from .monitoring import RunMonitor, get_monitor
from .resolver import resolve_group_refs
from .schema_model import SchemaCollection
from .substitution import expand_substitution_groups

logger = logging.getLogger(__name__)


@dataclass
class CoverageRun:
    """Artifacts of one coverage run."""

    bitmap: Bitmap = field(default_factory=dict)
    registry: SubstitutionGroupRegistry = field(default_factory=SubstitutionGroupRegistry)
    resolution: ResolutionReport = field(default_factory=ResolutionReport)
    diagnostics: Counter = field(default_factory=Counter)
    result: Optional[CoverageResult] = None
    graph: Optional[DependencyGraph] = None
    root_file: Optional[str] = None


def build_bitmap(
    xsd_folder: Union[str, Path],
    main_file: str,
    config: Optional[CoverageConfig] = None,
    collection: Optional[SchemaCollection] = None,
    monitor: Optional[RunMonitor] = None,
) -> CoverageRun:
    """Generate, resolve and expand the bitmap for one root schema.

    Raises:
        InputNotFoundError: If a schema file is missing.
        SchemaParseError: If a schema file is malformed.
    """
    config = config or CoverageConfig()
    monitor = monitor or get_monitor()
    collection = collection or SchemaCollection(get_cache_instance(config.cache_ttl))
    run = CoverageRun(root_file=root_file_id(xsd_folder, main_file))

    generator = PathGenerator(collection, config)
    with monitor.stage("generate") as stage:
        raw = generator.generate(xsd_folder, main_file)
        stage.items = count_paths(raw)
    run.registry = generator.registry
    run.diagnostics = generator.diagnostics

    with monitor.stage("resolve") as stage:
        resolved, run.resolution = resolve_group_refs(raw, rounds=config.group_ref_rounds)
        stage.items = count_paths(resolved)

    with monitor.stage("substitute") as stage:
        run.bitmap = expand_substitution_groups(
            resolved,
            run.registry,
            root_file=run.root_file if config.truncate_to_root else None,
        )
        stage.items = count_paths(run.bitmap)

    if config.build_dependency_graph:
        with monitor.stage("dependency_graph") as stage:
            # fresh index, parsed documents come from the shared cache
            run.graph = build_dependency_graph(
                SchemaCollection(collection.cache), xsd_folder, main_file
            )
            stage.items = len(run.graph.vertices)
        for vertex in run.graph.circular_vertices():
            logger.warning(f"Circular schema dependency: {vertex.unique_id}")

    logger.debug(f"Schema cache: {collection.cache.get_cache_stats()}")
    return run


def check_examples(
    run: CoverageRun,
    xml_folder: Union[str, Path],
    config: Optional[CoverageConfig] = None,
    monitor: Optional[RunMonitor] = None,
) -> CoverageResult:
    """Fill the covering sets of ``run.bitmap`` from the examples in ``xml_folder``.

    Raises:
        InputNotFoundError: If ``xml_folder`` does not exist.
    """
    monitor = monitor or get_monitor()
    checker = CoverageChecker(run.bitmap, config)
    with monitor.stage("coverage") as stage:
        run.result = checker.check_folder(xml_folder)
        stage.items = len(run.result.checked)
    return run.result


def run_coverage(
    xsd_folder: Optional[Union[str, Path]],
    main_file: Optional[str],
    xml_folder: Optional[Union[str, Path]] = None,
    config: Optional[CoverageConfig] = None,
    monitor: Optional[RunMonitor] = None,
) -> CoverageRun:
    """Run every stage whose inputs are given."""
    config = config or CoverageConfig()
    if xsd_folder is None or main_file is None:
        logger.info("No schema folder or root schema given, skipping bitmap generation")
        run = CoverageRun()
    else:
        run = build_bitmap(xsd_folder, main_file, config, monitor=monitor)

    if xml_folder is None:
        logger.info("No example folder given, skipping coverage check")
    else:
        check_examples(run, xml_folder, config, monitor)
    return run
