"""
Exception hierarchy for build-watch.

Startup failures propagate to the command layer; failures discovered after
watching has begun are caught and logged by the watch session.
"""


class BuildWatchError(Exception):
    """Base class for all build-watch errors."""


class ConfigError(BuildWatchError):
    """The project configuration file is missing or cannot be parsed."""


class DependencyError(BuildWatchError):
    """A declared dependency could not be installed."""

    def __init__(self, ecosystem: str, dependency: str, message: str):
        self.ecosystem = ecosystem
        self.dependency = dependency
        super().__init__(f"{ecosystem} dependency '{dependency}': {message}")


class WatchRegistrationError(BuildWatchError):
    """A directory could not be registered for filesystem notifications."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to watch directory '{path}': {cause}")


class BuildError(BuildWatchError):
    """The executor failed to build or start the application."""
