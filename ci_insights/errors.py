"""Exceptions raised by the CI insights engine and its loaders."""


class InsightsError(Exception):
    """Base class for all CI insights errors."""


class DependencyCycleError(InsightsError):
    """Explicit `needs` dependencies form a cycle inside one pipeline."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class PayloadError(InsightsError):
    """A raw provider payload could not be converted into a pipeline."""


class ConfigError(InsightsError):
    """Configuration file is unreadable or invalid."""
