"""
Command line entry point for XSD path coverage checks.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import CoverageConfig
from .errors import CoverageError, ReportWriteError
from .monitoring import initialize_monitor
from .pipeline import run_coverage
from .report import build_summary, ensure_writable, write_csv_report, write_summary

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Report which XSD structures are covered by example XML documents",
        prog="xsd-coverage"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument("--xsd", help="Folder holding the root schema")
    parser.add_argument("--main", help="Root schema file name, relative to --xsd")
    parser.add_argument("--xml", help="Folder of example XML documents (searched recursively)")
    parser.add_argument("--out", help="CSV report to write")
    parser.add_argument(
        "--rounds",
        type=_non_negative_int,
        help="Maximum group reference resolution rounds (default: 3)"
    )
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Report only the paths of the root schema file"
    )
    parser.add_argument(
        "--match-attributes",
        action="store_true",
        help="Also match example document attributes against schema paths"
    )
    parser.add_argument(
        "--dependency-graph",
        action="store_true",
        help="Build the include/import graph and report circular dependencies"
    )
    parser.add_argument("--summary-json", help="Write a JSON coverage summary to this file")
    parser.add_argument("--metrics-out", help="Write run metrics (timings, cache, memory) as JSON")
    return parser


def config_from_args(args: argparse.Namespace) -> CoverageConfig:
    """Environment configuration with command line flags applied on top."""
    config = CoverageConfig.from_env()
    if args.rounds is not None:
        config.group_ref_rounds = args.rounds
    if args.truncate:
        config.truncate_to_root = True
    if args.match_attributes:
        config.match_attributes = True
    if args.dependency_graph:
        config.build_dependency_graph = True
    return config


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"✗ Invalid configuration: {e}", file=sys.stderr)
        return 1

    monitor = initialize_monitor()
    try:
        for output in (args.out, args.summary_json, args.metrics_out):
            if output:
                ensure_writable(output)

        run = run_coverage(args.xsd, args.main, args.xml, config, monitor)

        if args.out:
            with monitor.stage("report"):
                report_path = write_csv_report(run.bitmap, args.out)
            print(f"✓ Wrote coverage report to: {report_path}")
        else:
            logger.info("No output file given, skipping report")

        summary = build_summary(run.bitmap, run.result, run.resolution)
        if args.summary_json:
            write_summary(summary, args.summary_json)
            print(f"✓ Wrote coverage summary to: {args.summary_json}")

        if args.metrics_out:
            try:
                monitor.export_metrics(Path(args.metrics_out))
            except OSError as e:
                raise ReportWriteError(f"Cannot write metrics {args.metrics_out}: {e}") from e
    except CoverageError as e:
        logger.error(str(e))
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print(
        f"{summary.covered_paths}/{summary.total_paths} schema paths covered "
        f"({summary.coverage_percent}%) by {summary.documents_checked} examples"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
