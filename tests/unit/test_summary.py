"""Tests for summary counting."""

from ctrf_reporter.models.report import CtrfTest, TestStatus
from ctrf_reporter.summary import create_summary, with_startup_duration
from ctrf_reporter.testing.factories import CtrfTestFactory


def test_counts_each_status() -> None:
    """Every status is counted and the total covers all tests."""
    tests = [
        CtrfTestFactory.build(status=TestStatus.PASSED),
        CtrfTestFactory.build(status=TestStatus.PASSED),
        CtrfTestFactory.build(status=TestStatus.FAILED),
        CtrfTestFactory.build(status=TestStatus.SKIPPED),
        CtrfTestFactory.build(status=TestStatus.PENDING),
        CtrfTestFactory.build(status=TestStatus.OTHER),
    ]

    summary = create_summary(tests, 1000, 5000)

    assert summary.tests == 6
    assert summary.passed == 2
    assert summary.failed == 1
    assert summary.skipped == 1
    assert summary.pending == 1
    assert summary.other == 1
    assert summary.start == 1000
    assert summary.stop == 5000
    assert summary.extra is None


def test_missing_status_counts_only_in_total() -> None:
    """Tests without a status are in the total but no status bucket."""
    tests = [CtrfTest(name="a"), CtrfTestFactory.build(status=TestStatus.PASSED)]

    summary = create_summary(tests, 0, 1)

    assert summary.tests == 2
    assert summary.passed == 1
    assert summary.failed + summary.skipped + summary.pending + summary.other == 0


def test_empty_run() -> None:
    """An empty run has all counts at zero."""
    summary = create_summary([], 10, 20)

    assert summary.tests == 0
    assert summary.passed == 0


def test_startup_duration_from_earliest_test() -> None:
    """Startup duration is the earliest test start minus the run start."""
    tests = [
        CtrfTestFactory.build(start=4000),
        CtrfTestFactory.build(start=3000),
        CtrfTestFactory.build(start=3500),
    ]
    summary = create_summary(tests, 1000, 5000)

    result = with_startup_duration(summary, tests)

    assert result.extra is not None
    assert result.extra.startup_duration == 2000


def test_startup_duration_needs_tests() -> None:
    """Without tests the summary is returned unchanged."""
    summary = create_summary([], 1000, 5000)

    assert with_startup_duration(summary, []) is summary
