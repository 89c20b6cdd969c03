"""Exceptions raised by the migration tool."""

from typing import Any

from phoenix.version import EXIT_CONFIG_ERROR, EXIT_ERROR, EXIT_FAILURES


class PhoenixError(Exception):
    """Base exception for migration errors."""

    def __init__(
        self,
        message: str,
        exit_code: int = EXIT_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.exit_code = exit_code
        self.details = details or {}
        super().__init__(message)


class ConfigError(PhoenixError):
    """Invalid tool configuration."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, exit_code=EXIT_CONFIG_ERROR, details=details)


class DiffStoreError(PhoenixError):
    """Stored customization data could not be read or written."""

    def __init__(self, message: str, path: Any = None):
        super().__init__(
            message=message,
            details={"path": str(path)} if path is not None else None,
        )


class UnknownPhaseError(PhoenixError):
    """Rollout phase not in ROLLOUT_PHASES."""

    def __init__(self, phase: str):
        super().__init__(
            message=f"Unknown phase: {phase}",
            exit_code=EXIT_FAILURES,
            details={"phase": phase},
        )


class RolloutError(PhoenixError):
    """Rollout state does not allow the requested transition."""

    def __init__(self, message: str):
        super().__init__(message=message, exit_code=EXIT_FAILURES)
