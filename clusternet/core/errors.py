"""Error hierarchy for clusternet."""

from typing import Any, Mapping, Optional


class ClusterNetError(Exception):
    """Base exception for reaction network failures."""

    def __init__(self, message: str, *, context: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class ConfigurationError(ClusterNetError, ValueError):
    """Malformed or contradictory network construction input."""


__all__ = [
    "ClusterNetError",
    "ConfigurationError",
]
