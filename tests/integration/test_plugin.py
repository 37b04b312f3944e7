"""Integration tests for the pytest plugin, run through pytester."""

from collections.abc import Callable
from typing import Any

import pytest

type ReadReportFn = Callable[..., dict[str, Any]]

REPORT_OPTION = "--ctrf-report-path=report.json"


def tests_by_name(report: dict[str, Any]) -> dict[str, dict[str, Any]]:
    return {test["name"].split("::")[-1]: test for test in report["results"]["tests"]}


def test_records_outcomes(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """Passed, failed, errored and skipped tests are counted."""
    pytester.makepyfile(
        test_sample="""
        import pytest

        @pytest.fixture
        def broken():
            raise RuntimeError("fixture exploded")

        def test_ok():
            pass

        def test_bad():
            assert 1 == 2

        def test_error(broken):
            pass

        @pytest.mark.skip(reason="not today")
        def test_skipped():
            pass
        """
    )

    result = pytester.runpytest(REPORT_OPTION)

    result.assert_outcomes(passed=1, failed=1, errors=1, skipped=1)
    report = read_report()
    assert report["reportFormat"] == "CTRF"
    assert report["generatedBy"] == "ctrf_reporter.plugin.CtrfPlugin"
    assert report["results"]["tool"]["name"] == "pytest"
    summary = report["results"]["summary"]
    assert summary["tests"] == 4
    assert summary["passed"] == 1
    assert summary["failed"] == 2
    assert summary["skipped"] == 1
    tests = tests_by_name(report)
    assert tests["test_ok"]["name"] == "test_sample.py::test_ok"
    assert tests["test_ok"]["filePath"] == "test_sample.py"
    assert "assert 1 == 2" in tests["test_bad"]["trace"]
    assert "fixture exploded" in tests["test_error"]["trace"]
    assert tests["test_skipped"]["message"] == "not today"
    assert tests["test_skipped"]["duration"] == 0


def test_xfail_is_skipped(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """Expected failures are reported as skipped with their reason."""
    pytester.makepyfile(
        test_xfail="""
        import pytest

        @pytest.mark.xfail(reason="known bug")
        def test_known():
            assert False
        """
    )

    pytester.runpytest(REPORT_OPTION)

    test = tests_by_name(read_report())["test_known"]
    assert test["status"] == "skipped"
    assert test["message"] == "xfail: known bug"


def test_collection_error(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """A module that fails to import is an initializationError entry."""
    pytester.makepyfile(
        test_broken="""
        import does_not_exist_anywhere

        def test_never():
            pass
        """
    )

    pytester.runpytest(REPORT_OPTION)

    tests = read_report()["results"]["tests"]
    assert len(tests) == 1
    assert tests[0]["name"] == "initializationError"
    assert tests[0]["status"] == "failed"
    assert tests[0]["filePath"] == "test_broken.py"
    assert "does_not_exist_anywhere" in tests[0]["trace"]


def test_independent_collection_errors(
    pytester: pytest.Pytester, read_report: ReadReportFn
) -> None:
    """Each module that fails to import gets its own initializationError entry."""
    pytester.makepyfile(
        test_broken_a="import does_not_exist_a\n\ndef test_never():\n    pass\n",
        test_broken_b="import does_not_exist_b\n\ndef test_never():\n    pass\n",
        test_fine="def test_ok():\n    pass\n",
    )

    pytester.runpytest(REPORT_OPTION, "--continue-on-collection-errors")

    report = read_report()
    errors = [t for t in report["results"]["tests"] if t["name"] == "initializationError"]
    assert len(errors) == 2
    by_file = {t["filePath"]: t for t in errors}
    assert set(by_file) == {"test_broken_a.py", "test_broken_b.py"}
    assert "does_not_exist_a" in by_file["test_broken_a.py"]["trace"]
    assert "does_not_exist_b" in by_file["test_broken_b.py"]["trace"]
    assert all(t["status"] == "failed" for t in errors)
    assert report["results"]["summary"]["passed"] == 1


def test_rerun_marks_flaky(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """A test failing in one session and passing in the next is flaky."""
    pytester.makepyfile(test_rerun="def test_unstable():\n    assert False\n")
    pytester.runpytest(REPORT_OPTION)
    first_start = read_report()["results"]["summary"]["start"]

    pytester.makepyfile(test_rerun="def test_unstable():\n    assert True\n")
    pytester.runpytest(REPORT_OPTION)

    report = read_report()
    tests = report["results"]["tests"]
    assert [t["status"] for t in tests] == ["failed", "passed"]
    assert "retries" not in tests[0]
    assert tests[1]["retries"] == 1
    assert tests[1]["flaky"] is True
    assert report["results"]["summary"]["start"] == first_start
    assert report["results"]["summary"]["tests"] == 2


def test_environment_fixture(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """Tests can mark the environment unhealthy through the fixture."""
    pytester.makepyfile(
        test_env="""
        def test_marks_unhealthy(ctrf_environment):
            assert ctrf_environment.is_healthy
            ctrf_environment.mark_unhealthy()
            assert not ctrf_environment.is_healthy
        """
    )

    result = pytester.runpytest(REPORT_OPTION)

    result.assert_outcomes(passed=1)
    assert read_report()["results"]["environment"]["healthy"] is False


def test_environment_fixture_without_report(pytester: pytest.Pytester) -> None:
    """Without reporting the fixture is usable and always healthy."""
    pytester.makepyfile(
        test_env="""
        def test_marks_unhealthy(ctrf_environment):
            ctrf_environment.mark_unhealthy()
            assert ctrf_environment.is_healthy
        """
    )

    result = pytester.runpytest()

    result.assert_outcomes(passed=1)


def test_env_healthy_variable(
    pytester: pytest.Pytester,
    read_report: ReadReportFn,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """ENV_HEALTHY=false set by a test is seen when the report is written."""
    pytester.makepyfile(
        test_env="""
        import os

        def test_breaks_environment():
            os.environ["ENV_HEALTHY"] = "false"
        """
    )
    monkeypatch.setenv("ENV_HEALTHY", "true")

    pytester.runpytest(REPORT_OPTION)

    assert read_report()["results"]["environment"]["healthy"] is False


def test_disabled_by_default(pytester: pytest.Pytester) -> None:
    """Without the option no report is written."""
    pytester.makepyfile(test_ok="def test_ok():\n    pass\n")

    pytester.runpytest()

    assert not (pytester.path / "ctrf-report.json").exists()


def test_ctrf_flag_uses_default_path(
    pytester: pytest.Pytester, read_report: ReadReportFn
) -> None:
    """--ctrf alone writes to the default file and says so."""
    pytester.makepyfile(test_ok="def test_ok():\n    pass\n")

    result = pytester.runpytest("--ctrf")

    result.stdout.fnmatch_lines(["*CTRF report written to*ctrf-report.json*"])
    assert read_report("ctrf-report.json")["results"]["summary"]["passed"] == 1


def test_markers_become_tags(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """Custom markers are tags; pytest's own markers are not."""
    pytester.makeini(
        """
        [pytest]
        markers =
            slow
            api
        """
    )
    pytester.makepyfile(
        test_tags="""
        import pytest

        @pytest.mark.slow
        @pytest.mark.api
        @pytest.mark.parametrize("value", [1])
        def test_tagged(value):
            pass
        """
    )

    pytester.runpytest(REPORT_OPTION)

    test = tests_by_name(read_report())["test_tagged[1]"]
    assert test["tags"] == ["api", "slow"]


def test_ini_options(pytester: pytest.Pytester, read_report: ReadReportFn) -> None:
    """Report path, message length and environment come from the ini file."""
    pytester.makeini(
        """
        [pytest]
        ctrf_report_path = reports/from-ini.json
        ctrf_max_message_length = 20
        ctrf_calculate_startup_duration = true
        ctrf_test_environment = staging
        """
    )
    pytester.makepyfile(test_fail="def test_bad():\n    assert 'a' * 50 == 'b'\n")

    pytester.runpytest("--ctrf")

    report = read_report("reports/from-ini.json")
    test = report["results"]["tests"][0]
    assert len(test["message"]) == 23
    assert test["message"].endswith("...")
    assert len(test["trace"]) > 23
    assert report["results"]["environment"]["testEnvironment"] == "staging"
    assert report["results"]["summary"]["extra"]["startupDuration"] >= 0


def test_command_line_overrides_ini(
    pytester: pytest.Pytester, read_report: ReadReportFn
) -> None:
    """Command line options take precedence over ini options."""
    pytester.makeini(
        """
        [pytest]
        ctrf_report_path = from-ini.json
        ctrf_max_message_length = 20
        """
    )
    pytester.makepyfile(test_fail="def test_bad():\n    assert 'a' * 50 == 'b'\n")

    pytester.runpytest(REPORT_OPTION, "--ctrf-max-message-length=30")

    assert not (pytester.path / "from-ini.json").exists()
    test = read_report()["results"]["tests"][0]
    assert len(test["message"]) == 33


@pytest.mark.parametrize("length", ["0", "-5", "many"])
def test_invalid_message_length_option(pytester: pytest.Pytester, length: str) -> None:
    """A message length below one or not a number stops the run with a usage error."""
    pytester.makepyfile(test_ok="def test_ok():\n    pass\n")

    result = pytester.runpytest(REPORT_OPTION, f"--ctrf-max-message-length={length}")

    assert result.ret != pytest.ExitCode.OK
    assert not (pytester.path / "report.json").exists()


def test_invalid_message_length_ini(pytester: pytest.Pytester) -> None:
    """An ini message length of zero is rejected rather than ignored."""
    pytester.makeini(
        """
        [pytest]
        ctrf_max_message_length = 0
        """
    )
    pytester.makepyfile(test_ok="def test_ok():\n    pass\n")

    result = pytester.runpytest(REPORT_OPTION)

    assert result.ret == pytest.ExitCode.USAGE_ERROR
    result.stderr.fnmatch_lines(["*Invalid CTRF settings*", "max_message_length*"])
    assert not (pytester.path / "report.json").exists()
