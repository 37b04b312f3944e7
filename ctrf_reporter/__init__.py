"""CTRF JSON reports for pytest and unittest runs."""

from ctrf_reporter.config import CtrfSettings
from ctrf_reporter.health import is_environment_healthy, mark_environment_unhealthy
from ctrf_reporter.manager import CtrfReportManager, get_report_manager

__all__ = [
    "CtrfReportManager",
    "CtrfSettings",
    "get_report_manager",
    "is_environment_healthy",
    "mark_environment_unhealthy",
]
