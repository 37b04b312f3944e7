"""Construction of finished test entries."""

import threading
from dataclasses import dataclass

from ctrf_reporter.failures import FailureCause, format_failure
from ctrf_reporter.models.details import TestDetails
from ctrf_reporter.models.report import CtrfTest, TestStatus


@dataclass(frozen=True, kw_only=True)
class TestProcessor:
    """Builds report entries from captured test details."""

    __test__ = False

    max_message_length: int = 500

    def create_test(
        self,
        details: TestDetails,
        stop_time: int,
        status: TestStatus,
        *,
        cause: FailureCause | None = None,
        message: str | None = None,
        thread_id: str | None = None,
    ) -> CtrfTest:
        """Create a finished test entry.

        Args:
            details: Details captured when the test started
            stop_time: Epoch milliseconds when the test finished
            status: Final report status
            cause: Failure cause, formatted into message and trace
            message: Plain message used when there is no cause
            thread_id: Worker that ran the test, defaults to the current thread

        Returns:
            The complete entry, with a non-negative duration

        """
        trace = None
        if cause is not None:
            failure = format_failure(cause, self.max_message_length)
            message, trace = failure.message, failure.trace

        return CtrfTest(
            name=details.display_name,
            status=status,
            tags=sorted(details.tags),
            file_path=details.file_path,
            start=details.start_time,
            stop=stop_time,
            duration=max(stop_time - details.start_time, 0),
            message=message,
            trace=trace,
            thread_id=thread_id or threading.current_thread().name,
        )
