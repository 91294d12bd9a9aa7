"""
Security policy with deny-list command screening and working-directory checks.

This is a best-effort guard, not a sandbox: substring matching cannot catch
obfuscated or equivalent spellings of a dangerous command. Run the host
process as a restricted user or inside a container when commands come from
an untrusted model.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from termops._types import SecurityLevel
from termops.errors import WorkingDirectoryError

logger = logging.getLogger(__name__)


class SecurityViolation(Exception):
    """
    Raised when a command violates the security policy.

    Attributes:
        command: The command that was blocked.
        reason: Why the command was blocked.
    """

    def __init__(self, reason: str, command: str = "") -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Security violation: {reason}")


# Destructive commands, matched as lower-cased substrings
DENIED_PATTERNS: list[str] = [
    "rm -rf /",
    "mkfs",
    "dd if=",
    "shutdown",
    "reboot",
    "halt",
    "init 0",
    "init 6",
    ":(){ :|:& };:",
    "chmod -r 777 /",
    "chown -r root /",
]

PRIVILEGE_ESCALATION_PATTERNS: tuple[str, ...] = ("sudo su", "su -")

# Rejected when they are the leading token
ACCOUNT_COMMANDS: frozenset[str] = frozenset({"passwd", "usermod", "userdel", "groupmod"})


@dataclass(frozen=True, slots=True)
class CommandVerdict:
    """Outcome of validating one command."""

    safe: bool
    reason: str | None = None


_SAFE = CommandVerdict(safe=True)


def _leading_command(command: str) -> str:
    """Return the command name, skipping ``VAR=value`` prefixes and directories."""
    for part in command.strip().split():
        if "=" not in part:
            return part.split("/")[-1]
    return ""


@dataclass
class SecurityPolicy:
    """
    Configurable security policy for command execution.

    Provides three security levels:
    - PERMISSIVE: Log dangerous commands but don't block
    - STANDARD: Block deny-listed patterns (default)
    - PARANOID: Deny-list plus an allowlist of command names
    """

    level: SecurityLevel = SecurityLevel.STANDARD
    denied_patterns: list[str] = field(default_factory=lambda: list(DENIED_PATTERNS))
    allowed_commands: set[str] = field(default_factory=set)
    safe_roots: tuple[Path, ...] = ()
    confine_to_safe_roots: bool = False

    @classmethod
    def permissive(cls) -> SecurityPolicy:
        """
        Create a permissive policy that logs but doesn't block.

        Use only in trusted environments for debugging.
        """
        return cls(level=SecurityLevel.PERMISSIVE)

    @classmethod
    def standard(cls) -> SecurityPolicy:
        """Create the standard deny-list policy (recommended)."""
        return cls(level=SecurityLevel.STANDARD)

    @classmethod
    def paranoid(cls, allowed: Iterable[str]) -> SecurityPolicy:
        """
        Create a paranoid policy that only allows specified commands.

        Args:
            allowed: Command names that are allowed (e.g., {"ls", "cat", "grep"}).
        """
        return cls(level=SecurityLevel.PARANOID, allowed_commands=set(allowed))

    def _screen(self, command: str) -> CommandVerdict:
        lowered = command.lower().strip()

        for pattern in self.denied_patterns:
            if pattern.lower() in lowered:
                return CommandVerdict(False, f"Dangerous command detected: {pattern}")

        if any(pattern in lowered for pattern in PRIVILEGE_ESCALATION_PATTERNS):
            return CommandVerdict(False, "Privilege escalation not allowed")

        tokens = lowered.split()
        if tokens and tokens[0] in ACCOUNT_COMMANDS:
            return CommandVerdict(
                False, "System modification commands require explicit permission"
            )

        if self.level == SecurityLevel.PARANOID:
            base_cmd = _leading_command(command)
            if base_cmd and base_cmd not in self.allowed_commands:
                return CommandVerdict(False, f"Command '{base_cmd}' not in allowlist")

        return _SAFE

    def validate_command(self, command: str) -> CommandVerdict:
        """
        Validate a command against the policy.

        Args:
            command: The command string to validate.

        Returns:
            A verdict; ``reason`` explains a rejection.
        """
        verdict = self._screen(command)
        if not verdict.safe and self.level == SecurityLevel.PERMISSIVE:
            logger.warning(f"Permissive policy allowing flagged command ({verdict.reason}): {command}")
            return _SAFE
        return verdict

    def check_command(self, command: str) -> str:
        """
        Validate a command, raising instead of returning a verdict.

        Returns:
            The command unchanged.

        Raises:
            SecurityViolation: If the command is blocked.
        """
        verdict = self.validate_command(command)
        if not verdict.safe:
            raise SecurityViolation(verdict.reason or "Command not allowed", command)
        return command

    def validate_working_dir(self, path: str | os.PathLike[str]) -> Path:
        """
        Resolve a working directory to an absolute path.

        Directories outside the safe roots are logged, and only rejected when
        ``confine_to_safe_roots`` is set.

        Raises:
            WorkingDirectoryError: If the path cannot be resolved.
        """
        raw = os.fspath(path)
        if not raw.strip():
            raise WorkingDirectoryError(raw, "empty path")
        try:
            resolved = Path(raw).expanduser().resolve()
        except (OSError, RuntimeError, ValueError) as exc:
            raise WorkingDirectoryError(raw, str(exc)) from exc

        if self.safe_roots and not self._within_safe_roots(resolved):
            if self.confine_to_safe_roots:
                raise WorkingDirectoryError(raw, "outside the allowed directories")
            logger.warning(f"Command executing outside safe directories: {resolved}")

        return resolved

    def _within_safe_roots(self, resolved: Path) -> bool:
        for root in self.safe_roots:
            try:
                root_resolved = root.expanduser().resolve()
            except (OSError, RuntimeError):
                continue
            if resolved == root_resolved or root_resolved in resolved.parents:
                return True
        return False

    def add_denied_pattern(self, pattern: str) -> None:
        """
        Add a custom deny-list entry.

        Args:
            pattern: Substring that makes a command unsafe (case-insensitive).
        """
        self.denied_patterns.append(pattern.lower())

    def add_allowed_command(self, command: str) -> None:
        """
        Add a command to the allowlist (for PARANOID mode).

        Args:
            command: Command name to allow (e.g., "ls").
        """
        self.allowed_commands.add(command)
