"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""

    def __init__(self, message: str, *, variables: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.variables = variables


class MissingConfigurationError(ConfigurationError):
    """Raised when required environment variables are absent or blank."""
