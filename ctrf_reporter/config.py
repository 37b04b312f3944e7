"""Settings for report generation."""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REPORT_PATH = Path("ctrf-report.json")


class CtrfSettings(BaseSettings):
    """Report settings, read from ``CTRF_*`` environment variables.

    Framework adapters layer their own options over these with
    ``model_copy(update=...)``.
    """

    model_config = SettingsConfigDict(env_prefix="CTRF_", frozen=True, extra="ignore")

    report_path: Path = Field(
        default=DEFAULT_REPORT_PATH, description="Where the report is written"
    )
    max_message_length: int = Field(
        default=500, ge=1, description="Failure messages longer than this are cut"
    )
    calculate_startup_duration: bool = Field(
        default=False,
        description="Add the time before the first test started to the summary",
    )

    # Tool section
    tool_name: str | None = None
    tool_version: str | None = None

    # Environment section
    report_name: str | None = None
    app_name: str | None = None
    app_version: str | None = None
    build_name: str | None = None
    build_number: str | None = None
    build_url: str | None = None
    repository_name: str | None = None
    repository_url: str | None = None
    commit: str | None = None
    branch_name: str | None = None
    os_platform: str | None = None
    os_release: str | None = None
    os_version: str | None = None
    test_environment: str | None = None


def with_tool_defaults(settings: CtrfSettings, name: str, version: str) -> CtrfSettings:
    """Fill in the tool section where the user did not configure it."""
    update: dict[str, str] = {}
    if settings.tool_name is None:
        update["tool_name"] = name
        if settings.tool_version is None:
            update["tool_version"] = version
    if not update:
        return settings
    return settings.model_copy(update=update)


ENV_HEALTHY_VARIABLE = "ENV_HEALTHY"


def is_environment_variable_unhealthy(environ: Mapping[str, str] | None = None) -> bool:
    """Whether ``ENV_HEALTHY`` is set to ``false``, in any letter case."""
    env = os.environ if environ is None else environ
    return env.get(ENV_HEALTHY_VARIABLE, "").strip().lower() == "false"
