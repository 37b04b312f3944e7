"""Fixtures for integration tests."""

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from ctrf_reporter.manager import clear_report_managers

type ReadReportFn = Callable[..., dict[str, Any]]


@pytest.fixture(autouse=True)
def isolated_reporting(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test with no shared managers and no CTRF environment."""
    monkeypatch.delenv("ENV_HEALTHY", raising=False)
    monkeypatch.delenv("CTRF_REPORT_PATH", raising=False)
    monkeypatch.delenv("CTRF_MAX_MESSAGE_LENGTH", raising=False)
    clear_report_managers()
    yield
    clear_report_managers()


@pytest.fixture
def read_report(pytester: pytest.Pytester) -> ReadReportFn:
    """Return a function reading a report from the pytester directory."""

    def read(name: str = "report.json") -> dict[str, Any]:
        path: Path = pytester.path / name
        return json.loads(path.read_text(encoding="utf-8"))

    return read
