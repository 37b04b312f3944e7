"""Retry counting and flaky detection by test name."""

from collections.abc import Sequence
from dataclasses import dataclass

from ctrf_reporter.models.report import CtrfTest, TestStatus


@dataclass(frozen=True, kw_only=True)
class FlakyVerdict:
    """Derived retry data for a newly finished test."""

    retries: int | None = None
    flaky: bool | None = None


def find_tests_by_name(name: str | None, existing: Sequence[CtrfTest]) -> list[CtrfTest]:
    """Return the entries with exactly this name. Unnamed entries never match."""
    if name is None:
        return []
    return [test for test in existing if test.name is not None and test.name == name]


def detect_flaky(new_test: CtrfTest, existing: Sequence[CtrfTest]) -> FlakyVerdict:
    """Compute retries and the flaky flag of a test against earlier entries.

    Every earlier entry with the same name counts as one retry. A test that
    passes after any earlier attempt, failed or not, is flaky.
    """
    previous = find_tests_by_name(new_test.name, existing)
    if not previous:
        return FlakyVerdict()

    retries = len(previous)
    flaky = None
    if new_test.status == TestStatus.PASSED:
        had_failures = any(test.status == TestStatus.FAILED for test in previous)
        if had_failures or retries > 0:
            flaky = True

    return FlakyVerdict(retries=retries, flaky=flaky)


def mark_flaky(new_test: CtrfTest, existing: Sequence[CtrfTest]) -> CtrfTest:
    """Return the test with retries and flaky filled in from earlier entries."""
    verdict = detect_flaky(new_test, existing)
    update: dict[str, object] = {}
    if verdict.retries is not None:
        update["retries"] = verdict.retries
    if verdict.flaky is not None:
        update["flaky"] = verdict.flaky
    if not update:
        return new_test
    return new_test.model_copy(update=update)
