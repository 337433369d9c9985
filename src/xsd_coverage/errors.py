"""Exception hierarchy for fatal coverage-run conditions.

Only configuration-level problems are raised: a named input that does not
exist, a schema file that is not well-formed XML, or a report that cannot be
written. Everything that happens while walking schema content (unknown
construct kinds, unresolvable references, ambiguous group references) is
logged and skipped instead, so a large schema set still yields a partial
report.
"""

from __future__ import annotations


class CoverageError(Exception):
    """Base class for errors that abort a coverage run."""


class InputNotFoundError(CoverageError, FileNotFoundError):
    """A schema file, schema folder or example folder does not exist."""


class SchemaParseError(CoverageError):
    """A schema file could not be parsed as XML."""


class ReportWriteError(CoverageError):
    """The output report could not be opened for writing."""
