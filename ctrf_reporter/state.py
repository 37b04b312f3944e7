"""Thread-safe tracking of in-flight and finished tests."""

import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from ctrf_reporter.models.details import TestDetails
from ctrf_reporter.models.report import CtrfTest


@dataclass(eq=False)
class AtomicFlag:
    """Boolean with an atomic compare-and-set."""

    value: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self) -> bool:
        """Return the current value."""
        with self._lock:
            return self.value

    def set(self, value: bool) -> None:
        """Unconditionally replace the value."""
        with self._lock:
            self.value = value

    def compare_and_set(self, expect: bool, update: bool) -> bool:
        """Set to ``update`` only if currently ``expect``; report whether it did."""
        with self._lock:
            if self.value != expect:
                return False
            self.value = update
            return True


@dataclass(eq=False)
class TestStateTracker:
    """In-flight test registry and append-only ledger of finished tests.

    Each container has its own lock held only for a single operation, so
    parallel workers never wait on each other for longer than one insert,
    removal or append.
    """

    __test__ = False

    _tests: list[CtrfTest] = field(default_factory=list, init=False, repr=False)
    _tests_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _details: dict[str, TestDetails] = field(
        default_factory=dict, init=False, repr=False
    )
    _details_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def put_test_details(self, details: TestDetails) -> None:
        """Register a started test under its unique id."""
        with self._details_lock:
            self._details[details.unique_id] = details

    def remove_test_details(self, unique_id: str) -> TestDetails | None:
        """Take the details of a started test, or None if it is unknown."""
        with self._details_lock:
            return self._details.pop(unique_id, None)

    def in_flight_count(self) -> int:
        with self._details_lock:
            return len(self._details)

    def add_test(self, test: CtrfTest) -> None:
        """Append a finished test."""
        with self._tests_lock:
            self._tests.append(test)

    def add_all_tests(self, tests: Iterable[CtrfTest]) -> None:
        """Append tests keeping their order, e.g. from a previous run."""
        with self._tests_lock:
            self._tests.extend(tests)

    def append_analyzed(
        self,
        test: CtrfTest,
        analyze: Callable[[CtrfTest, Sequence[CtrfTest]], CtrfTest],
    ) -> CtrfTest:
        """Derive fields of ``test`` from the ledger and append the result.

        Analysis and append happen under one lock so two same-named tests
        finishing together see each other and get distinct retry counts.
        """
        with self._tests_lock:
            analyzed = analyze(test, self._tests)
            self._tests.append(analyzed)
            return analyzed

    def snapshot(self) -> list[CtrfTest]:
        """Copy of the ledger as of now."""
        with self._tests_lock:
            return list(self._tests)

    def is_empty(self) -> bool:
        with self._tests_lock:
            return not self._tests

    def last_stop(self) -> int | None:
        """Stop time of the most recently appended test."""
        with self._tests_lock:
            if not self._tests:
                return None
            return self._tests[-1].stop

    def has_test_named(self, name: str) -> bool:
        with self._tests_lock:
            return any(test.name == name for test in self._tests)

    def clear(self) -> None:
        """Drop all in-flight and finished tests."""
        with self._tests_lock:
            self._tests.clear()
        with self._details_lock:
            self._details.clear()
