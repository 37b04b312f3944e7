"""Run lifecycle of a CTRF report: start, per-test events, finish."""

import logging
import os
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ctrf_reporter.config import CtrfSettings, is_environment_variable_unhealthy
from ctrf_reporter.failures import FailureCause
from ctrf_reporter.file_service import (
    CtrfReportFileService,
    existing_environment_health,
    existing_start_time,
    existing_tests,
)
from ctrf_reporter.flaky import mark_flaky
from ctrf_reporter.models.details import SuiteContext, TestDetails, TestIdentity
from ctrf_reporter.models.report import CtrfTest, TestOutcome, TestStatus
from ctrf_reporter.orchestrator import ReportOrchestrator
from ctrf_reporter.processor import TestProcessor
from ctrf_reporter.state import AtomicFlag, TestStateTracker
from ctrf_reporter.suite_errors import INITIALIZATION_ERROR, SuiteExecutionErrorHandler

log = logging.getLogger(__name__)

UNKNOWN_TEST = "Unknown Test"


def current_time_millis() -> int:
    """Wall clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(kw_only=True, eq=False)
class CtrfReportManager:
    """Tracks one test run and writes its report when the run finishes.

    All methods may be called concurrently from any number of worker threads
    and from several framework adapters at once. ``start_test_run`` and
    ``finish_test_run`` take effect only for the first caller; later callers
    return without doing anything.
    """

    file_service: CtrfReportFileService
    processor: TestProcessor
    error_handler: SuiteExecutionErrorHandler
    orchestrator: ReportOrchestrator
    clock: Callable[[], int] = current_time_millis
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False)

    _state: TestStateTracker = field(default_factory=TestStateTracker, init=False)
    _started: AtomicFlag = field(default_factory=AtomicFlag, init=False)
    _healthy: AtomicFlag = field(
        default_factory=lambda: AtomicFlag(True), init=False
    )
    _run_start_time: int = field(default=0, init=False)
    _generator: str | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if is_environment_variable_unhealthy(self.environ):
            self._healthy.set(False)

    @classmethod
    def from_settings(
        cls,
        settings: CtrfSettings,
        *,
        clock: Callable[[], int] = current_time_millis,
        environ: Mapping[str, str] | None = None,
    ) -> "CtrfReportManager":
        """Wire a manager and its collaborators from settings."""
        file_service = CtrfReportFileService(report_path=settings.report_path)
        processor = TestProcessor(max_message_length=settings.max_message_length)
        return cls(
            file_service=file_service,
            processor=processor,
            error_handler=SuiteExecutionErrorHandler(processor=processor),
            orchestrator=ReportOrchestrator(
                settings=settings, file_service=file_service
            ),
            clock=clock,
            environ=os.environ if environ is None else environ,
        )

    @property
    def is_started(self) -> bool:
        return self._started.get()

    @property
    def run_start_time(self) -> int:
        return self._run_start_time

    @property
    def generator(self) -> str | None:
        return self._generator

    @property
    def is_environment_healthy(self) -> bool:
        return self._healthy.get()

    def mark_environment_unhealthy(self) -> None:
        """Mark the environment unhealthy for the rest of the process."""
        if self._healthy.compare_and_set(True, False):
            log.warning("Test environment marked unhealthy")

    def tests(self) -> list[CtrfTest]:
        """Snapshot of the finished tests of the current run."""
        return self._state.snapshot()

    def start_test_run(self, generator: str) -> None:
        """Begin a run, merging in the report of a previous run if there is one.

        Args:
            generator: Name of the adapter driving the run

        """
        if not self._started.compare_and_set(False, True):
            log.debug("Test run already started, ignoring start from %s", generator)
            return

        self._generator = generator
        previous = self.file_service.read_existing_report()

        existing_start = existing_start_time(previous)
        self._run_start_time = (
            existing_start if existing_start is not None else self.clock()
        )

        previous_tests = existing_tests(previous)
        if previous_tests:
            log.info(
                "Found %d test(s) in existing report %s. Tests might have been rerun.",
                len(previous_tests),
                self.file_service.report_path,
            )
        self._state.add_all_tests(previous_tests)

        if not existing_environment_health(previous):
            self._healthy.set(False)

    def on_test_start(self, identity: TestIdentity, *, start_time: int | None = None) -> None:
        """Register a started test.

        Args:
            identity: Identity of the test
            start_time: Start time if the adapter captured it earlier, now otherwise

        """
        start = self.clock() if start_time is None else start_time
        self._state.put_test_details(TestDetails.from_identity(identity, start))

    def on_test_skipped(
        self,
        identity: TestIdentity,
        reason: str | None = None,
        *,
        thread_id: str | None = None,
    ) -> CtrfTest:
        """Record a skipped test with zero duration."""
        now = self.clock()
        # Adapters that report skips after the test started leave an in-flight entry.
        self._state.remove_test_details(identity.unique_id)

        details = TestDetails.from_identity(identity, now)
        test = self.processor.create_test(
            details, now, TestStatus.SKIPPED, message=reason, thread_id=thread_id
        )
        self._state.add_test(test)
        return test

    def on_test_success(self, unique_id: str, *, thread_id: str | None = None) -> CtrfTest:
        return self.record_outcome(unique_id, None, TestOutcome.PASSED, thread_id=thread_id)

    def on_test_failure(
        self,
        unique_id: str,
        cause: FailureCause | None,
        *,
        thread_id: str | None = None,
    ) -> CtrfTest:
        return self.record_outcome(unique_id, cause, TestOutcome.FAILED, thread_id=thread_id)

    def on_test_aborted(
        self,
        unique_id: str,
        cause: FailureCause | None,
        *,
        thread_id: str | None = None,
    ) -> CtrfTest:
        return self.record_outcome(unique_id, cause, TestOutcome.ABORTED, thread_id=thread_id)

    def record_outcome(
        self,
        unique_id: str,
        cause: FailureCause | None,
        outcome: TestOutcome,
        *,
        thread_id: str | None = None,
    ) -> CtrfTest:
        """Finish an in-flight test and append it to the run.

        A test that was never registered as started is recorded as
        ``Unknown Test`` with zero duration.

        Args:
            unique_id: Id the test was started with
            cause: Failure cause, if any
            outcome: Outcome reported by the framework
            thread_id: Worker that ran the test

        Returns:
            The appended entry, with retries and flaky derived from the run

        """
        stop = self.clock()
        details = self._state.remove_test_details(unique_id)
        if details is None:
            log.debug("No start recorded for %s", unique_id)
            details = TestDetails(
                unique_id=unique_id, display_name=UNKNOWN_TEST, start_time=stop
            )

        test = self.processor.create_test(
            details, stop, outcome.status, cause=cause, thread_id=thread_id
        )
        return self._state.append_analyzed(test, mark_flaky)

    def finish_test_run(self, context: SuiteContext | None = None) -> bool:
        """Finish the run and write the report.

        Args:
            context: Suite context from the host framework, if it has one

        Returns:
            True if this call wrote the report

        """
        if not self._started.compare_and_set(True, False):
            log.debug("Test run not started or already finished")
            return False

        stop = self.clock()

        if self._state.is_empty():
            if context is not None:
                failure = self.error_handler.handle_initialization_error(
                    context, self._run_start_time, stop
                )
                if failure is not None:
                    self._state.add_test(failure)
        elif (
            context is not None
            and context.execution_exception is not None
            and not self._state.has_test_named(INITIALIZATION_ERROR)
        ):
            last_stop = self._state.last_stop()
            failure = self.error_handler.handle_execution_error(
                context, stop if last_stop is None else last_stop, stop
            )
            if failure is not None:
                self._state.add_test(failure)

        # Tests may have changed the variable while running.
        if is_environment_variable_unhealthy(self.environ):
            self._healthy.set(False)

        try:
            return self.orchestrator.generate_and_write_report(
                self._state.snapshot(),
                self._run_start_time,
                stop,
                self._healthy.get(),
                self._generator,
            )
        except Exception:
            log.exception("Failed to generate CTRF report")
            return False
        finally:
            self._state.clear()


_managers: dict[Path, CtrfReportManager] = {}
_managers_lock = threading.Lock()


def get_report_manager(settings: CtrfSettings) -> CtrfReportManager:
    """Return the manager for the settings' report path, creating it once.

    Adapters writing to the same file share one manager, so a run driven by
    several adapters at once still produces a single report.
    """
    key = settings.report_path.resolve()
    with _managers_lock:
        manager = _managers.get(key)
        if manager is None:
            manager = CtrfReportManager.from_settings(settings)
            _managers[key] = manager
        return manager


def registered_managers() -> list[CtrfReportManager]:
    with _managers_lock:
        return list(_managers.values())


def clear_report_managers() -> None:
    """Forget all managers. Meant for tests."""
    with _managers_lock:
        _managers.clear()
