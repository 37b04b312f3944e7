"""Reading and writing of the report file."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from ctrf_reporter.models.report import CtrfReport, CtrfTest

log = logging.getLogger(__name__)


def existing_tests(report: CtrfReport | None) -> Sequence[CtrfTest]:
    """Tests of a previous report, in their original order."""
    if report is None or report.results is None:
        return []
    return list(report.results.tests)


def existing_start_time(report: CtrfReport | None) -> int | None:
    """Run start time of a previous report, if it has a summary."""
    if report is None or report.results is None or report.results.summary is None:
        return None
    return report.results.summary.start


def existing_environment_health(report: CtrfReport | None) -> bool:
    """Environment health of a previous report, healthy if unknown."""
    if report is None or report.results is None or report.results.environment is None:
        return True
    return report.results.environment.healthy


@dataclass(frozen=True, kw_only=True)
class CtrfReportFileService:
    """Loads the report of a previous run and persists the new one.

    No method raises on file system or format problems: they are logged and
    treated as "no previous report" or "write skipped" so that reporting never
    aborts the test run.
    """

    report_path: Path

    def read_existing_report(self) -> CtrfReport | None:
        """Parse the report at ``report_path`` if there is a readable one."""
        if not self.report_path.exists():
            return None

        try:
            content = self.report_path.read_text(encoding="utf-8")
            return CtrfReport.model_validate_json(content)
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            log.error("Failed to read existing report file: %s - %s", self.report_path, e)
            return None

    def get_existing_tests(self) -> Sequence[CtrfTest]:
        """Tests of the previous report, in their original order."""
        return existing_tests(self.read_existing_report())

    def get_existing_start_time(self) -> int | None:
        """Run start time of the previous report, if any."""
        return existing_start_time(self.read_existing_report())

    def get_existing_environment_health(self) -> bool:
        """Environment health of the previous report, healthy if unknown."""
        return existing_environment_health(self.read_existing_report())

    def write_results_to_file(self, report: CtrfReport) -> bool:
        """Write the report, creating parent directories as needed.

        Returns:
            True if the file was written

        """
        try:
            self.report_path.parent.mkdir(parents=True, exist_ok=True)
            self.report_path.write_text(report.to_json(), encoding="utf-8")
        except PermissionError as e:
            log.error("Access denied: %s - %s", self.report_path, e)
            return False
        except OSError as e:
            log.error("Failed to write results to file: %s - %s", self.report_path, e)
            return False

        log.debug("Wrote CTRF report to %s", self.report_path)
        return True
