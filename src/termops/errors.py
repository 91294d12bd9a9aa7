"""
Exception hierarchy for termops.

These are raised inside the core (policy, registry, configuration) and
converted into failed ExecutionResults at the dispatcher boundary.
"""

from __future__ import annotations


class TermOpsError(Exception):
    """Base class for all termops errors."""


class ConfigurationError(TermOpsError):
    """Raised when a TerminalConfig value is missing or out of range."""


class ExecutionError(TermOpsError):
    """Raised when a component is used in a state where it cannot run commands."""


class WorkingDirectoryError(TermOpsError):
    """
    Raised when a working directory cannot be resolved.

    Attributes:
        path: The path as it was requested.
        reason: Why it was rejected.
    """

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"Invalid working directory: {path!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class RegistryError(TermOpsError):
    """Base class for process registry failures."""

    def __init__(self, process_id: str, message: str) -> None:
        self.process_id = process_id
        super().__init__(message)


class ProcessNotFound(RegistryError):
    """No live process is tracked under the given id."""

    def __init__(self, process_id: str) -> None:
        super().__init__(process_id, f"Process {process_id} not found or already terminated")


class DuplicateProcessError(RegistryError):
    """A live process is already tracked under the given id."""

    def __init__(self, process_id: str) -> None:
        super().__init__(process_id, f"Process id {process_id} is already registered")


class KillFailed(RegistryError):
    """A termination signal could not be delivered."""

    def __init__(self, process_id: str, reason: str) -> None:
        self.reason = reason
        super().__init__(process_id, f"Failed to kill process {process_id}: {reason}")
