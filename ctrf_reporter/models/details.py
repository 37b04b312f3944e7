"""Models describing tests while they run and the suite that contains them."""

from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Protocol

from ctrf_reporter.failures import FailureCause


class TestIdentity(Protocol):
    """Identity of a test as exposed by a host framework adapter."""

    @property
    def unique_id(self) -> str:
        """Run-unique identifier of the test."""
        ...

    @property
    def display_name(self) -> str:
        """Name written to the report."""
        ...

    @property
    def tags(self) -> Collection[str]:
        """Tags attached to the test."""
        ...

    @property
    def source_location(self) -> str | None:
        """Where the test is defined, if known."""
        ...


@dataclass(frozen=True, kw_only=True)
class TestDetails:
    """Start-time metadata of a test that has started but not finished."""

    __test__ = False

    unique_id: str
    display_name: str
    start_time: int
    tags: frozenset[str] = field(default_factory=frozenset)
    file_path: str | None = None

    @classmethod
    def from_identity(cls, identity: TestIdentity, start_time: int) -> "TestDetails":
        """Capture an adapter identity at the given start time."""
        return cls(
            unique_id=identity.unique_id,
            display_name=identity.display_name,
            start_time=start_time,
            tags=frozenset(identity.tags),
            file_path=identity.source_location,
        )


@dataclass(frozen=True, kw_only=True)
class SuiteContext:
    """What the host framework knows about the suite when the run finishes."""

    execution_exception: FailureCause | None = None
    class_name: str | None = None
