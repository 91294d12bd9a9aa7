"""
Top-level facade for termops.
"""

from termops._types import (
    ExecutionResult,
    Operation,
    ProcessInfo,
    SecurityLevel,
    TerminalToolkit,
    Verb,
)
from termops.api import create_terminal
from termops.config import TerminalConfig
from termops.dispatcher import CommandDispatcher
from termops.errors import (
    ConfigurationError,
    DuplicateProcessError,
    ExecutionError,
    KillFailed,
    ProcessNotFound,
    RegistryError,
    TermOpsError,
    WorkingDirectoryError,
)
from termops.parser import parse
from termops.registry import ProcessRegistry, TrackedProcess
from termops.render import format_results
from termops.runner import CommandRunner, RunMode
from termops.security.policy import CommandVerdict, SecurityPolicy, SecurityViolation

# Exports
__all__ = [
    "create_terminal",
    "parse",
    "format_results",
    "TerminalToolkit",
    "TerminalConfig",
    "CommandDispatcher",
    "CommandRunner",
    "RunMode",
    "ProcessRegistry",
    "TrackedProcess",
    "ProcessInfo",
    "Operation",
    "Verb",
    "ExecutionResult",
    "SecurityLevel",
    "SecurityPolicy",
    "CommandVerdict",
    "SecurityViolation",
    "TermOpsError",
    "ConfigurationError",
    "ExecutionError",
    "WorkingDirectoryError",
    "RegistryError",
    "ProcessNotFound",
    "DuplicateProcessError",
    "KillFailed",
]
