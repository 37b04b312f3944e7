"""Report and run-state models."""

from ctrf_reporter.models.details import SuiteContext, TestDetails, TestIdentity
from ctrf_reporter.models.report import (
    CtrfReport,
    CtrfTest,
    Environment,
    Results,
    Summary,
    SummaryExtra,
    TestOutcome,
    TestStatus,
    Tool,
)

__all__ = [
    "CtrfReport",
    "CtrfTest",
    "Environment",
    "Results",
    "Summary",
    "SummaryExtra",
    "SuiteContext",
    "TestDetails",
    "TestIdentity",
    "TestOutcome",
    "TestStatus",
    "Tool",
]
