"""CLI entry point running unittest discovery with a CTRF report."""

import argparse
import logging
import sys
import unittest
from collections.abc import Sequence
from pathlib import Path

from ctrf_reporter.manager import get_report_manager
from ctrf_reporter.models.report import CtrfReport, TestStatus
from ctrf_reporter.unittest_runner import CtrfTestRunner, default_settings

STATUS_SYMBOLS = {
    TestStatus.PASSED: "✅",
    TestStatus.FAILED: "❌",
    TestStatus.SKIPPED: "⏭️",
    TestStatus.PENDING: "⏳",
    TestStatus.OTHER: "❔",
}


def log_report_summary(log: logging.Logger, report: CtrfReport) -> None:
    """Log a formatted summary of a written report."""
    if report.results is None:
        return

    log.info("=" * 80)
    log.info("CTRF Report Summary:")
    log.info("=" * 80)

    for test in report.results.tests:
        symbol = STATUS_SYMBOLS.get(test.status, "?") if test.status else "?"
        suffix = " (flaky)" if test.flaky else ""
        log.info(
            "%s %s: %s (%dms)%s", symbol, test.name, test.status, test.duration, suffix
        )

    summary = report.results.summary
    if summary is not None:
        log.info(
            "Total: %d, passed: %d, failed: %d, skipped: %d, pending: %d, other: %d",
            summary.tests,
            summary.passed,
            summary.failed,
            summary.skipped,
            summary.pending,
            summary.other,
        )
    if report.results.environment is not None and not report.results.environment.healthy:
        log.info("Environment: unhealthy")


def run(
    start_dir: str,
    pattern: str,
    top_level_dir: str | None = None,
    report_path: Path | None = None,
    verbosity: int = 1,
) -> int:
    """Discover and run tests, write the report and return the exit code."""
    log = logging.getLogger("ctrf_reporter")

    settings = default_settings()
    if report_path is not None:
        settings = settings.model_copy(update={"report_path": report_path})
    manager = get_report_manager(settings)

    log.info("Discovering tests in %s (pattern=%s)", start_dir, pattern)
    suite = unittest.defaultTestLoader.discover(
        start_dir, pattern=pattern, top_level_dir=top_level_dir
    )

    runner = CtrfTestRunner(verbosity=verbosity, manager=manager)
    result = runner.run(suite)

    report = manager.file_service.read_existing_report()
    if report is not None:
        log_report_summary(log, report)
        log.info("Report written to %s", settings.report_path)

    return 0 if result.wasSuccessful() else 1


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run unittest discovery and write a CTRF JSON report"
    )
    parser.add_argument(
        "-s",
        "--start-dir",
        default=".",
        help="Directory to start discovery (default: current directory)",
    )
    parser.add_argument(
        "-p",
        "--pattern",
        default="test*.py",
        help="Pattern to match test files (default: test*.py)",
    )
    parser.add_argument(
        "-t",
        "--top-level-dir",
        default=None,
        help="Top level directory of the project",
    )
    parser.add_argument(
        "--report-path",
        type=Path,
        default=None,
        help="Report file path (default: CTRF_REPORT_PATH or ctrf-report.json)",
    )
    parser.add_argument(
        "-v",
        "--verbosity",
        type=int,
        default=1,
        help="unittest output verbosity",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = run(
        start_dir=args.start_dir,
        pattern=args.pattern,
        top_level_dir=args.top_level_dir,
        report_path=args.report_path,
        verbosity=args.verbosity,
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
