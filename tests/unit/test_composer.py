"""Tests for report composition."""

import json
import uuid

from ctrf_reporter.composer import CtrfJsonComposer
from ctrf_reporter.config import CtrfSettings
from ctrf_reporter.models.report import CtrfTest, TestStatus
from ctrf_reporter.summary import create_summary
from ctrf_reporter.testing.factories import CtrfTestFactory


def test_composes_all_sections() -> None:
    """Tool, summary, tests and environment are all present."""
    settings = CtrfSettings(
        tool_name="pytest",
        tool_version="8.3.0",
        app_name="shop",
        build_number="42",
        branch_name="main",
    )
    tests = [CtrfTestFactory.build(name="a"), CtrfTestFactory.build(name="b")]
    composer = CtrfJsonComposer(settings=settings, generated_by="ctrf_reporter.plugin")

    report = composer.generate_ctrf_json(create_summary(tests, 1, 2), tests, True)

    assert report.report_format == "CTRF"
    assert report.spec_version == "0.0.0"
    assert report.generated_by == "ctrf_reporter.plugin"
    uuid.UUID(report.report_id or "")
    assert report.timestamp is not None
    assert report.timestamp.endswith("Z")
    assert report.results is not None
    assert report.results.tool is not None
    assert report.results.tool.name == "pytest"
    assert report.results.tool.version == "8.3.0"
    assert report.results.summary is not None
    assert report.results.summary.tests == 2
    assert [t.name for t in report.results.tests] == ["a", "b"]
    assert report.results.environment is not None
    assert report.results.environment.app_name == "shop"
    assert report.results.environment.build_number == "42"
    assert report.results.environment.branch_name == "main"
    assert report.results.environment.healthy is True


def test_report_id_is_fresh_per_composition() -> None:
    """Each composition gets a new report id."""
    composer = CtrfJsonComposer(settings=CtrfSettings())
    summary = create_summary([], 1, 2)

    first = composer.generate_ctrf_json(summary, [], True)
    second = composer.generate_ctrf_json(summary, [], True)

    assert first.report_id != second.report_id


def test_unhealthy_environment() -> None:
    """The health flag is written into the environment section."""
    composer = CtrfJsonComposer(settings=CtrfSettings())

    report = composer.generate_ctrf_json(create_summary([], 1, 2), [], False)

    assert report.results is not None
    assert report.results.environment is not None
    assert report.results.environment.healthy is False


def test_startup_duration_only_when_enabled() -> None:
    """Startup duration is added only when the setting is on."""
    tests = [CtrfTestFactory.build(start=4000)]
    summary = create_summary(tests, 1000, 5000)

    disabled = CtrfJsonComposer(settings=CtrfSettings()).generate_ctrf_json(
        summary, tests, True
    )
    enabled = CtrfJsonComposer(
        settings=CtrfSettings(calculate_startup_duration=True)
    ).generate_ctrf_json(summary, tests, True)

    assert disabled.results is not None and disabled.results.summary is not None
    assert disabled.results.summary.extra is None
    assert enabled.results is not None and enabled.results.summary is not None
    assert enabled.results.summary.extra is not None
    assert enabled.results.summary.extra.startup_duration == 3000


def test_json_uses_ctrf_names_and_omits_absent_values() -> None:
    """Wire names are camelCase and None fields are left out."""
    test = CtrfTest(
        name="a",
        status=TestStatus.PASSED,
        file_path="tests/test_a.py",
        thread_id="MainThread",
    )
    composer = CtrfJsonComposer(settings=CtrfSettings(), generated_by="gen")

    report = composer.generate_ctrf_json(create_summary([test], 1, 2), [test], True)
    document = json.loads(report.to_json())

    assert document["reportFormat"] == "CTRF"
    assert document["specVersion"] == "0.0.0"
    assert document["generatedBy"] == "gen"
    assert "reportId" in document
    entry = document["results"]["tests"][0]
    assert entry["filePath"] == "tests/test_a.py"
    assert entry["threadId"] == "MainThread"
    assert entry["status"] == "passed"
    assert "message" not in entry
    assert "retries" not in entry
    assert "flaky" not in entry
    environment = document["results"]["environment"]
    assert environment == {"healthy": True}
    assert "extra" not in document["results"]["summary"]
