"""Custom exceptions for baykit."""

from typing import Any


class BayKitError(Exception):
    """Base exception for all baykit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigError(BayKitError):
    """Raised when baykit.yaml cannot be loaded or is invalid."""


class MutationError(BayKitError):
    """Raised when an edit is given offsets outside the document."""


class StaleReportError(MutationError):
    """Raised when an analysis report is applied to a different document version."""


class ConvergenceError(BayKitError):
    """Raised when repeated edits fail to reach a satisfied document."""


class WriteError(BayKitError):
    """Raised when a file cannot be read or written."""

    def __init__(self, path: Any, reason: str, action: str = "write") -> None:
        super().__init__(
            f"Failed to {action} {path}: {reason}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class InstallError(BayKitError):
    """Raised when the package manager command fails."""


class BayNotFoundError(BayKitError):
    """Raised when a render context has no bay bound to it."""
