"""Error types raised at collaborator boundaries."""

from __future__ import annotations


class FeatureServiceError(RuntimeError):
    """The feature service answered with an error or an unreadable body."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(RuntimeError):
    """A required collaborator is missing or unusable at startup."""
