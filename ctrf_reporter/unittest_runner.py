"""unittest result and runner writing a CTRF report.

Use ``CtrfTestRunner`` in place of ``unittest.TextTestRunner``::

    unittest.main(testRunner=CtrfTestRunner)
"""

import platform
import re
import unittest
from dataclasses import dataclass
from types import TracebackType
from typing import Any, TextIO

from ctrf_reporter.config import CtrfSettings, with_tool_defaults
from ctrf_reporter.manager import CtrfReportManager, get_report_manager
from ctrf_reporter.models.details import SuiteContext
from ctrf_reporter.models.report import TestOutcome
from ctrf_reporter.suite_errors import INITIALIZATION_ERROR, initialization_error_id

GENERATED_BY = "ctrf_reporter.unittest_runner.CtrfTestResult"

type ExcInfo = tuple[type[BaseException], BaseException, TracebackType | None]

# unittest reports class and module fixture errors as e.g. "setUpClass (pkg.mod.Class)".
FIXTURE_DESCRIPTION = re.compile(r"^\w+ \((?P<container>.+)\)$")


@dataclass(frozen=True, kw_only=True)
class UnittestIdentity:
    """Identity of a unittest test case."""

    unique_id: str
    display_name: str
    tags: frozenset[str] = frozenset()
    source_location: str | None = None

    @classmethod
    def from_test(cls, test: unittest.TestCase) -> "UnittestIdentity":
        test_class = type(test)
        return cls(
            unique_id=test.id(),
            display_name=test.id(),
            source_location=f"{test_class.__module__}.{test_class.__qualname__}",
        )

    @classmethod
    def from_fixture_error(cls, holder: Any) -> "UnittestIdentity":
        """Synthetic identity for a class or module fixture that failed."""
        description = holder.id()
        match = FIXTURE_DESCRIPTION.match(description)
        container = match.group("container") if match else description
        return cls(
            unique_id=initialization_error_id(description),
            display_name=INITIALIZATION_ERROR,
            source_location=container,
        )


def default_settings() -> CtrfSettings:
    return with_tool_defaults(CtrfSettings(), "unittest", platform.python_version())


class CtrfTestResult(unittest.TextTestResult):
    """Text test result that also records every outcome for the CTRF report."""

    def __init__(
        self,
        stream: TextIO,
        descriptions: bool,
        verbosity: int,
        *,
        manager: CtrfReportManager | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(stream, descriptions, verbosity, **kwargs)
        self.manager = manager or get_report_manager(default_settings())
        self._failed_subtests: set[str] = set()

    def startTestRun(self) -> None:
        super().startTestRun()
        self.manager.start_test_run(GENERATED_BY)

    def stopTestRun(self) -> None:
        super().stopTestRun()
        self.manager.finish_test_run(SuiteContext())

    def startTest(self, test: unittest.TestCase) -> None:
        super().startTest(test)
        self.manager.on_test_start(UnittestIdentity.from_test(test))

    def addSuccess(self, test: unittest.TestCase) -> None:
        super().addSuccess(test)
        self.manager.on_test_success(test.id())

    def addFailure(self, test: unittest.TestCase, err: ExcInfo) -> None:
        super().addFailure(test, err)
        if test.id() in self._failed_subtests:
            return
        self.manager.on_test_failure(test.id(), self._exc_info_to_string(err, test))

    def addError(self, test: unittest.TestCase, err: ExcInfo) -> None:
        super().addError(test, err)
        if not isinstance(test, unittest.TestCase):
            self._add_fixture_error(test, err)
        elif test.id() not in self._failed_subtests:
            self.manager.on_test_aborted(test.id(), self._exc_info_to_string(err, test))

    def addSkip(self, test: unittest.TestCase, reason: str) -> None:
        super().addSkip(test, reason)
        if isinstance(test, unittest.TestCase):
            identity = UnittestIdentity.from_test(test)
        else:
            identity = UnittestIdentity.from_fixture_error(test)
        self.manager.on_test_skipped(identity, reason or None)

    def addExpectedFailure(self, test: unittest.TestCase, err: ExcInfo) -> None:
        super().addExpectedFailure(test, err)
        self.manager.on_test_skipped(UnittestIdentity.from_test(test), "expected failure")

    def addUnexpectedSuccess(self, test: unittest.TestCase) -> None:
        super().addUnexpectedSuccess(test)
        self.manager.on_test_failure(test.id(), "Unexpected success")

    def addSubTest(
        self,
        test: unittest.TestCase,
        subtest: unittest.TestCase,
        err: ExcInfo | None,
    ) -> None:
        super().addSubTest(test, subtest, err)
        # The first failing subtest decides the outcome of the whole test.
        if err is None or test.id() in self._failed_subtests:
            return
        self._failed_subtests.add(test.id())
        if issubclass(err[0], test.failureException):
            outcome = TestOutcome.FAILED
        else:
            outcome = TestOutcome.ABORTED
        self.manager.record_outcome(
            test.id(), self._exc_info_to_string(err, subtest), outcome
        )

    def _add_fixture_error(self, holder: Any, err: ExcInfo) -> None:
        identity = UnittestIdentity.from_fixture_error(holder)
        self.manager.on_test_start(identity)
        self.manager.on_test_aborted(identity.unique_id, self._exc_info_to_string(err, holder))


class CtrfTestRunner(unittest.TextTestRunner):
    """Text test runner whose results are written to a CTRF report."""

    resultclass = CtrfTestResult

    def __init__(self, *args: Any, manager: CtrfReportManager | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.manager = manager

    def _makeResult(self) -> CtrfTestResult:
        return CtrfTestResult(
            self.stream,
            self.descriptions,
            self.verbosity,
            durations=self.durations,
            manager=self.manager,
        )
