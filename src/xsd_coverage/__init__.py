"""XSD Coverage
================

Measure how much of an XML Schema set is exercised by a corpus of example
documents.

Key capabilities
----------------
- Walk a root XSD and everything it includes or imports into a *bitmap*: per
  schema file, the structural paths (elements, attributes, attribute groups,
  groups) it declares. See :class:`~xsd_coverage.generator.PathGenerator`.
- Resolve model group references and expand substitution groups so the paths
  match what instance documents actually contain.
- Match every node of every example document against those paths with a
  segment-aligned subpath test (:func:`~xsd_coverage.subpath.full_subpath`).
- Write a ``;``-separated CSV report and a JSON summary; optionally build the
  include/import dependency graph and flag circular dependencies.

Design principles
-----------------
1. **Paths are strings** - every stage compares ``/``-separated paths with
    the same textual matcher.
2. **Read/write separation** - resolution rounds read a frozen bitmap and
    write into a deep copy.
3. **Partial output over failure** - unsupported schema constructs are
    logged and skipped; only missing inputs and unwritable outputs abort.

Minimal quick start
-------------------
>>> from xsd_coverage import run_coverage, write_csv_report
>>> run = run_coverage("xsd/", "root.xsd", "examples/")
>>> write_csv_report(run.bitmap, "coverage.csv")

Public surface
--------------
Only a curated subset is exported at the package level; the stage modules
can be imported explicitly.
"""

__version__ = "0.1.0"

from .config import CoverageConfig
from .errors import CoverageError
from .pipeline import run_coverage
from .report import write_csv_report
from .subpath import full_subpath

__all__ = [
    "CoverageConfig",
    "CoverageError",
    "full_subpath",
    "run_coverage",
    "write_csv_report",
]
