"""Composition of the CTRF report document."""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from ctrf_reporter.config import CtrfSettings
from ctrf_reporter.models.report import (
    CtrfReport,
    CtrfTest,
    Environment,
    Results,
    Summary,
    Tool,
)
from ctrf_reporter.summary import with_startup_duration

DEFAULT_TOOL_NAME = "pytest"


def iso_timestamp() -> str:
    """Current UTC time in ISO-8601 with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, kw_only=True)
class CtrfJsonComposer:
    """Builds the report document from results and settings."""

    settings: CtrfSettings
    generated_by: str | None = None

    def generate_ctrf_json(
        self, summary: Summary, tests: Sequence[CtrfTest], environment_healthy: bool
    ) -> CtrfReport:
        """Compose a complete report with a fresh id and timestamp."""
        if self.settings.calculate_startup_duration:
            summary = with_startup_duration(summary, tests)

        results = Results(
            tool=self.compose_tool(),
            summary=summary,
            tests=list(tests),
            environment=self.compose_environment(environment_healthy),
        )
        return CtrfReport(
            report_id=str(uuid.uuid4()),
            timestamp=iso_timestamp(),
            generated_by=self.generated_by,
            results=results,
        )

    def compose_tool(self) -> Tool:
        return Tool(
            name=self.settings.tool_name or DEFAULT_TOOL_NAME,
            version=self.settings.tool_version,
        )

    def compose_environment(self, healthy: bool) -> Environment:
        """Environment section taken verbatim from settings."""
        s = self.settings
        return Environment(
            report_name=s.report_name,
            app_name=s.app_name,
            app_version=s.app_version,
            build_name=s.build_name,
            build_number=s.build_number,
            build_url=s.build_url,
            repository_name=s.repository_name,
            repository_url=s.repository_url,
            commit=s.commit,
            branch_name=s.branch_name,
            os_platform=s.os_platform,
            os_release=s.os_release,
            os_version=s.os_version,
            test_environment=s.test_environment,
            healthy=healthy,
        )
