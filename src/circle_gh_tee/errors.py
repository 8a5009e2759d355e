"""
Error types raised while wrapping a command and commenting on its pull request.
"""
from typing import Optional


class CircleGhTeeError(RuntimeError):
    """Base class for every fatal error raised by circle-gh-tee."""

    def __init__(self, message: str, exit_status: Optional[int] = None) -> None:
        super().__init__(message)
        # Exit status of the wrapped command, when it ran before the failure.
        self.exit_status = exit_status


class SpawnFailure(CircleGhTeeError):
    """Raised when the wrapped command cannot be started."""


class TemplateSyntaxError(CircleGhTeeError):
    """Raised when a comment template cannot be rendered."""


class InvalidPrReference(CircleGhTeeError):
    """Raised when the pull request reference does not name a pull request."""


class PrNumberUnresolved(CircleGhTeeError):
    """Raised when no pull request number could be found for the CI run."""


class PublishFailure(CircleGhTeeError):
    """Raised when the comment could not be posted to GitHub."""


class ConfigurationError(CircleGhTeeError):
    """Raised when a configuration value is invalid."""
