"""Conversion of suite-level errors into synthetic failed tests."""

import logging
from dataclasses import dataclass

from ctrf_reporter.models.details import SuiteContext, TestDetails
from ctrf_reporter.models.report import CtrfTest, TestStatus
from ctrf_reporter.processor import TestProcessor

log = logging.getLogger(__name__)

INITIALIZATION_ERROR = "initializationError"


def initialization_error_id(container_id: str) -> str:
    """Unique id of the synthetic failure entry for one container."""
    return f"{container_id}/{INITIALIZATION_ERROR}"


@dataclass(frozen=True, kw_only=True)
class SuiteExecutionErrorHandler:
    """Turns errors raised outside any single test into report entries.

    The entry is named ``initializationError``, the name JUnit-style XML
    reporters use for a class or suite that failed to set up.
    """

    processor: TestProcessor

    def handle_initialization_error(
        self, context: SuiteContext, start: int, stop: int
    ) -> CtrfTest | None:
        """Entry for a suite that failed before any test finished.

        Args:
            context: Suite context reported by the host framework
            start: Run start time
            stop: Run stop time

        Returns:
            The synthetic failure, or None if the suite raised nothing

        """
        return self._build(context, start, stop)

    def handle_execution_error(
        self, context: SuiteContext, last_test_stop: int, stop: int
    ) -> CtrfTest | None:
        """Entry for a suite-level error raised after tests already finished."""
        return self._build(context, last_test_stop, stop)

    def _build(self, context: SuiteContext, start: int, stop: int) -> CtrfTest | None:
        cause = context.execution_exception
        if cause is None:
            return None

        log.warning(
            "Suite execution failed (class=%s), recording %s",
            context.class_name,
            INITIALIZATION_ERROR,
        )
        details = TestDetails(
            unique_id=initialization_error_id(context.class_name or "suite"),
            display_name=INITIALIZATION_ERROR,
            start_time=start,
            file_path=context.class_name,
        )
        return self.processor.create_test(
            details, stop, TestStatus.FAILED, cause=cause
        )
