"""Final report generation and persistence."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ctrf_reporter.composer import CtrfJsonComposer
from ctrf_reporter.config import CtrfSettings
from ctrf_reporter.file_service import CtrfReportFileService
from ctrf_reporter.models.report import CtrfTest
from ctrf_reporter.summary import create_summary

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ReportOrchestrator:
    """Coordinates summary creation, composition and writing of the report."""

    settings: CtrfSettings
    file_service: CtrfReportFileService
    composer_factory: Callable[[CtrfSettings, str | None], CtrfJsonComposer] = (
        lambda settings, generator: CtrfJsonComposer(
            settings=settings, generated_by=generator
        )
    )

    def generate_and_write_report(
        self,
        tests: Sequence[CtrfTest],
        run_start: int,
        run_stop: int,
        environment_healthy: bool,
        generator: str | None,
    ) -> bool:
        """Compose the report for ``tests`` and write it.

        Args:
            tests: All finished tests, previous runs included
            run_start: Run start time, epoch milliseconds
            run_stop: Run stop time, epoch milliseconds
            environment_healthy: Final environment health
            generator: Name of the adapter that drove the run

        Returns:
            True if the report was written

        """
        composer = self.composer_factory(self.settings, generator)
        summary = create_summary(tests, run_start, run_stop)
        report = composer.generate_ctrf_json(summary, tests, environment_healthy)

        log.info(
            "Writing CTRF report: path=%s, tests=%d, passed=%d, failed=%d, skipped=%d",
            self.file_service.report_path,
            summary.tests,
            summary.passed,
            summary.failed,
            summary.skipped,
        )
        return self.file_service.write_results_to_file(report)
