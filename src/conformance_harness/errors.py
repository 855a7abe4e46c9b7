"""Exception hierarchy shared by the harness layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .models import ExecutionResult


class HarnessError(RuntimeError):
    """Base class for every error raised by the harness."""


class ConfigError(HarnessError):
    """Raised when harness or test configuration cannot be loaded."""


class FixtureError(HarnessError):
    """Raised when a ruleset fixture or analyzer output is malformed."""


class TargetConfigurationError(HarnessError):
    """Raised when a target cannot be constructed from its configuration."""


class PreconditionError(HarnessError):
    """Raised when a test cannot run against a target as configured."""


class MaterializationError(HarnessError):
    """Raised when the application input cannot be prepared locally."""


class ExecutionError(HarnessError):
    """Raised when a backend fails to produce analysis output."""


class CommandFailedError(ExecutionError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, message: str, result: "ExecutionResult") -> None:
        super().__init__(message)
        self.result = result


class ExecutionTimeoutError(ExecutionError):
    """Raised when a backend does not finish before its deadline."""


class CommandTimeoutError(ExecutionTimeoutError):
    """Raised when an external command is killed after its timeout."""


class ExecutionCancelledError(ExecutionTimeoutError):
    """Raised when a run is cancelled by the caller while still in flight."""


class TaskFailedError(ExecutionError):
    """Raised when a remote analysis task reaches the ``Failed`` state."""

    def __init__(self, task_id: int, detail: str) -> None:
        super().__init__(f"analysis task {task_id} failed: {detail}")
        self.task_id = task_id
        self.detail = detail


class HubRequestError(ExecutionError):
    """Raised when the hub API rejects or fails a request."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RPCError(ExecutionError):
    """Raised when an analyzer RPC server returns an error object."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


__all__ = [
    "CommandFailedError",
    "CommandTimeoutError",
    "ConfigError",
    "ExecutionCancelledError",
    "ExecutionError",
    "ExecutionTimeoutError",
    "FixtureError",
    "HarnessError",
    "HubRequestError",
    "MaterializationError",
    "PreconditionError",
    "RPCError",
    "TargetConfigurationError",
    "TaskFailedError",
]
