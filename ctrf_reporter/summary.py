"""Summary counting over finished tests."""

from collections import Counter
from collections.abc import Sequence

from ctrf_reporter.models.report import CtrfTest, Summary, SummaryExtra, TestStatus


def create_summary(tests: Sequence[CtrfTest], start: int, stop: int) -> Summary:
    """Count tests per status in a single pass.

    Tests without a status are part of the total but of no status count.
    """
    counts = Counter(test.status for test in tests if test.status is not None)
    return Summary(
        tests=len(tests),
        passed=counts[TestStatus.PASSED],
        failed=counts[TestStatus.FAILED],
        pending=counts[TestStatus.PENDING],
        skipped=counts[TestStatus.SKIPPED],
        other=counts[TestStatus.OTHER],
        start=start,
        stop=stop,
    )


def with_startup_duration(summary: Summary, tests: Sequence[CtrfTest]) -> Summary:
    """Add the time from run start to the earliest test start.

    Nothing changes when there are no tests.
    """
    if not tests:
        return summary
    earliest = min(test.start for test in tests)
    extra = SummaryExtra(startup_duration=earliest - summary.start)
    return summary.model_copy(update={"extra": extra})
