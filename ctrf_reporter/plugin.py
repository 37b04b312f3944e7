"""pytest plugin writing a CTRF report for the session.

Enable with ``--ctrf`` (or by giving ``--ctrf-report-path``). Settings come
from ``CTRF_*`` environment variables, overridden by ini options and then by
command line options.
"""

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from pydantic import ValidationError

from ctrf_reporter.config import CtrfSettings, with_tool_defaults
from ctrf_reporter.failures import FailureCause
from ctrf_reporter.health import EnvironmentHealth
from ctrf_reporter.manager import CtrfReportManager, get_report_manager
from ctrf_reporter.models.details import SuiteContext
from ctrf_reporter.models.report import TestOutcome
from ctrf_reporter.suite_errors import INITIALIZATION_ERROR, initialization_error_id

log = logging.getLogger(__name__)

GENERATED_BY = "ctrf_reporter.plugin.CtrfPlugin"

# Markers that configure pytest itself rather than label a test.
BUILTIN_MARKERS = frozenset(
    {"parametrize", "usefixtures", "filterwarnings", "skip", "skipif", "xfail"}
)

ctrf_plugin_key = pytest.StashKey["CtrfPlugin"]()


@dataclass(frozen=True, kw_only=True)
class PytestIdentity:
    """Identity of a pytest item or collector."""

    unique_id: str
    display_name: str
    tags: Collection[str] = frozenset()
    source_location: str | None = None


@dataclass(kw_only=True)
class PendingResult:
    """Outcome of a test gathered across its setup, call and teardown reports."""

    outcome: TestOutcome | None = None
    cause: FailureCause | None = None
    skip_reason: str | None = None
    skipped: bool = False
    worker: str | None = None


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("ctrf", "CTRF JSON report")
    group.addoption(
        "--ctrf",
        action="store_true",
        dest="ctrf",
        default=False,
        help="Write a CTRF JSON report at the end of the session.",
    )
    group.addoption(
        "--ctrf-report-path",
        dest="ctrf_report_path",
        default=None,
        help="Report file path (default: ctrf-report.json). Implies --ctrf.",
    )
    group.addoption(
        "--ctrf-max-message-length",
        dest="ctrf_max_message_length",
        type=int,
        default=None,
        help="Failure messages longer than this are truncated (default: 500).",
    )
    parser.addini("ctrf_report_path", help="CTRF report file path.")
    parser.addini("ctrf_max_message_length", help="Maximum failure message length.")
    parser.addini(
        "ctrf_calculate_startup_duration",
        help="Add the time before the first test to the summary.",
        type="bool",
        default=False,
    )
    parser.addini("ctrf_test_environment", help="Name of the test environment.")


def is_enabled(config: pytest.Config) -> bool:
    return bool(config.getoption("ctrf") or config.getoption("ctrf_report_path"))


def build_settings(config: pytest.Config) -> CtrfSettings:
    """Settings from the environment with ini and command line overrides.

    Raises:
        pytest.UsageError: If an override is not a valid setting

    """
    settings = with_tool_defaults(CtrfSettings(), "pytest", pytest.__version__)
    update: dict[str, object] = {}

    report_path = config.getoption("ctrf_report_path") or config.getini("ctrf_report_path")
    if report_path:
        update["report_path"] = Path(report_path)

    max_length = config.getoption("ctrf_max_message_length")
    if max_length is None:
        max_length = config.getini("ctrf_max_message_length") or None
    if max_length is not None:
        update["max_message_length"] = max_length

    if config.getini("ctrf_calculate_startup_duration"):
        update["calculate_startup_duration"] = True

    if test_environment := config.getini("ctrf_test_environment"):
        update["test_environment"] = test_environment

    try:
        settings = CtrfSettings.model_validate({**settings.model_dump(), **update})
    except ValidationError as e:
        raise pytest.UsageError(f"Invalid CTRF settings: {e}") from e

    # Relative paths resolve against the invocation directory.
    report_file = config.invocation_params.dir / settings.report_path
    return settings.model_copy(update={"report_path": report_file})


def pytest_configure(config: pytest.Config) -> None:
    # On xdist workers the controller receives every report and writes the file.
    if not is_enabled(config) or hasattr(config, "workerinput"):
        return

    settings = build_settings(config)
    plugin = CtrfPlugin(
        manager=get_report_manager(settings), report_path=settings.report_path
    )
    config.stash[ctrf_plugin_key] = plugin
    config.pluginmanager.register(plugin, "ctrf-reporter")


def pytest_unconfigure(config: pytest.Config) -> None:
    plugin = config.stash.get(ctrf_plugin_key, None)
    if plugin is not None:
        del config.stash[ctrf_plugin_key]
        config.pluginmanager.unregister(plugin)


@pytest.fixture
def ctrf_environment(request: pytest.FixtureRequest) -> EnvironmentHealth:
    """Environment health of the session's CTRF report."""
    plugin = request.config.stash.get(ctrf_plugin_key, None)
    return EnvironmentHealth(manager=plugin.manager if plugin is not None else None)


def skip_reason(report: pytest.TestReport) -> str | None:
    """Reason given for a skip or xfail, if any."""
    if hasattr(report, "wasxfail"):
        return f"xfail: {report.wasxfail}" if report.wasxfail else "xfail"

    longrepr = report.longrepr
    if isinstance(longrepr, tuple) and len(longrepr) == 3:
        message = str(longrepr[2])
        return message.removeprefix("Skipped: ") or None
    return str(longrepr) if longrepr else None


def worker_id(report: pytest.TestReport) -> str | None:
    """xdist worker that produced a report, if any."""
    node = getattr(report, "node", None)
    gateway = getattr(node, "gateway", None)
    return getattr(gateway, "id", None)


@dataclass(kw_only=True, eq=False)
class CtrfPlugin:
    """Feeds pytest session events into a report manager."""

    manager: CtrfReportManager
    report_path: Path
    written: bool = False

    _tags: dict[str, frozenset[str]] = field(default_factory=dict, init=False)
    _pending: dict[str, PendingResult] = field(default_factory=dict, init=False)
    _collection_start: int | None = field(default=None, init=False)
    _session_error: FailureCause | None = field(default=None, init=False)

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self.manager.start_test_run(GENERATED_BY)
        self._collection_start = self.manager.clock()

    def pytest_collection_modifyitems(self, items: list[pytest.Item]) -> None:
        for item in items:
            self._tags[item.nodeid] = frozenset(
                mark.name
                for mark in item.iter_markers()
                if mark.name not in BUILTIN_MARKERS
            )

    def pytest_collectreport(self, report: pytest.CollectReport) -> None:
        """Record a collector that failed as an initialization error."""
        if not report.failed:
            return

        container_id = report.nodeid or "session"
        unique_id = initialization_error_id(container_id)
        identity = PytestIdentity(
            unique_id=unique_id,
            display_name=INITIALIZATION_ERROR,
            source_location=report.nodeid.split("::")[0] or None,
        )
        log.warning("Collection failed for %s", container_id)
        self.manager.on_test_start(identity, start_time=self._collection_start)
        self.manager.on_test_failure(unique_id, report.longreprtext)

    def pytest_runtest_logstart(
        self, nodeid: str, location: tuple[str, int | None, str]
    ) -> None:
        self._pending[nodeid] = PendingResult()
        self.manager.on_test_start(self._identity(nodeid, location))

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        pending = self._pending.setdefault(report.nodeid, PendingResult())
        pending.worker = pending.worker or worker_id(report)

        if report.outcome == "rerun":
            # pytest-rerunfailures: the failed attempt is final, the next one starts now.
            self.manager.on_test_failure(
                report.nodeid, report.longreprtext, thread_id=pending.worker
            )
            self._pending[report.nodeid] = PendingResult(worker=pending.worker)
            self.manager.on_test_start(self._identity(report.nodeid, report.location))
            return

        if report.failed:
            if pending.cause is None:
                pending.outcome = (
                    TestOutcome.FAILED if report.when == "call" else TestOutcome.ABORTED
                )
                pending.cause = report.longreprtext
        elif report.skipped:
            pending.skipped = True
            pending.skip_reason = skip_reason(report)

    def pytest_runtest_logfinish(
        self, nodeid: str, location: tuple[str, int | None, str]
    ) -> None:
        pending = self._pending.pop(nodeid, None) or PendingResult()

        if pending.outcome is not None:
            self.manager.record_outcome(
                nodeid, pending.cause, pending.outcome, thread_id=pending.worker
            )
        elif pending.skipped:
            self.manager.on_test_skipped(
                self._identity(nodeid, location),
                pending.skip_reason,
                thread_id=pending.worker,
            )
        else:
            self.manager.on_test_success(nodeid, thread_id=pending.worker)

    def pytest_keyboard_interrupt(self, excinfo: pytest.ExceptionInfo[BaseException]) -> None:
        self._session_error = excinfo.value

    def pytest_internalerror(self, excrepr: object) -> None:
        self._session_error = str(excrepr)

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        context = SuiteContext(execution_exception=self._session_error)
        self.written = self.manager.finish_test_run(context)

    def pytest_terminal_summary(self, terminalreporter: pytest.TerminalReporter) -> None:
        if self.written:
            terminalreporter.write_sep("-", f"CTRF report written to {self.report_path}")

    def _identity(
        self, nodeid: str, location: tuple[str, int | None, str]
    ) -> PytestIdentity:
        return PytestIdentity(
            unique_id=nodeid,
            display_name=nodeid,
            tags=self._tags.get(nodeid, frozenset()),
            source_location=location[0],
        )
