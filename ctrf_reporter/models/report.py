"""Models for the CTRF report document."""

from collections.abc import Sequence
from enum import StrEnum
from typing import Literal

from pydantic import Field

from ctrf_reporter.models.base import Model

REPORT_FORMAT = "CTRF"
SPEC_VERSION = "0.0.0"


class TestStatus(StrEnum):
    """Status of a test as written to the report."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"
    OTHER = "other"


class TestOutcome(StrEnum):
    """Outcome reported by the host test framework for a finished test.

    Aborted tests are reported as failed with the abort cause attached,
    following the convention of JUnit-style XML reporters.
    """

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def status(self) -> TestStatus:
        """Report status for this outcome."""
        if self is TestOutcome.PASSED:
            return TestStatus.PASSED
        return TestStatus.FAILED


class CtrfTest(Model):
    """A single finished test entry."""

    __test__ = False

    name: str | None = Field(default=None, description="Test name")
    status: TestStatus | None = Field(default=None, description="Final status")
    duration: int = Field(default=0, description="Duration in milliseconds")
    start: int = Field(default=0, description="Start time, epoch milliseconds")
    stop: int = Field(default=0, description="Stop time, epoch milliseconds")
    message: str | None = None
    trace: str | None = None
    tags: Sequence[str] = Field(default_factory=list)
    file_path: str | None = Field(default=None, description="Source location")
    retries: int | None = Field(default=None, ge=0)
    flaky: bool | None = None
    thread_id: str | None = Field(default=None, description="Worker that ran it")


class SummaryExtra(Model):
    """Optional additions to the summary."""

    startup_duration: int | None = None


class Summary(Model):
    """Aggregated counts over all tests in the report."""

    tests: int = 0
    passed: int = 0
    failed: int = 0
    pending: int = 0
    skipped: int = 0
    other: int = 0
    start: int = 0
    stop: int = 0
    extra: SummaryExtra | None = None


class Tool(Model):
    """Tool that produced the test results."""

    name: str
    version: str | None = None


class Environment(Model):
    """Environment the tests ran in."""

    report_name: str | None = None
    app_name: str | None = None
    app_version: str | None = None
    build_name: str | None = None
    build_number: str | None = None
    build_url: str | None = None
    repository_name: str | None = None
    repository_url: str | None = None
    commit: str | None = None
    branch_name: str | None = None
    os_platform: str | None = None
    os_release: str | None = None
    os_version: str | None = None
    test_environment: str | None = None
    healthy: bool = True


class Results(Model):
    """The results section of a report."""

    tool: Tool | None = None
    summary: Summary | None = None
    tests: Sequence[CtrfTest] = Field(default_factory=list)
    environment: Environment | None = None


class CtrfReport(Model):
    """Complete CTRF report document."""

    report_format: Literal["CTRF"] = REPORT_FORMAT
    spec_version: str = SPEC_VERSION
    report_id: str | None = None
    timestamp: str | None = None
    generated_by: str | None = None
    results: Results | None = None
