"""Public API for tracking test environment health.

The environment is healthy unless the ``ENV_HEALTHY`` variable is ``false``,
a test marks it unhealthy, or a previous run writing to the same report file
did. Once unhealthy it stays unhealthy for the rest of the process.
"""

from dataclasses import dataclass

from ctrf_reporter.config import ENV_HEALTHY_VARIABLE, is_environment_variable_unhealthy
from ctrf_reporter.manager import CtrfReportManager, registered_managers

__all__ = [
    "ENV_HEALTHY_VARIABLE",
    "EnvironmentHealth",
    "is_environment_healthy",
    "is_environment_variable_unhealthy",
    "mark_environment_unhealthy",
]


def mark_environment_unhealthy() -> None:
    """Mark the environment unhealthy in every active report."""
    for manager in registered_managers():
        manager.mark_environment_unhealthy()


def is_environment_healthy() -> bool:
    """Whether every active report still considers the environment healthy."""
    return all(manager.is_environment_healthy for manager in registered_managers())


@dataclass(frozen=True, kw_only=True)
class EnvironmentHealth:
    """Health operations bound to a single report.

    Without a manager (reporting disabled) marking is a no-op and the
    environment reads as healthy.
    """

    manager: CtrfReportManager | None = None

    def mark_unhealthy(self) -> None:
        if self.manager is not None:
            self.manager.mark_environment_unhealthy()

    @property
    def is_healthy(self) -> bool:
        if self.manager is None:
            return True
        return self.manager.is_environment_healthy
