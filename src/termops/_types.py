"""
Core type definitions for termops.

Uses dataclasses for lightweight, immutable records passed between the
parser, dispatcher and runner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Mapping

from termops.errors import ExecutionError

if TYPE_CHECKING:
    from termops.config import TerminalConfig
    from termops.dispatcher import CommandDispatcher
    from termops.security.policy import SecurityPolicy


class SecurityLevel(Enum):
    """Security posture for command validation."""

    PERMISSIVE = "permissive"  # Log dangerous commands, don't block
    STANDARD = "standard"  # Block known-dangerous patterns
    PARANOID = "paranoid"  # Allowlist-only, deny by default


class Verb(str, Enum):
    """Actions a directive can request."""

    EXECUTE = "execute"
    INTERACTIVE = "interactive"
    BACKGROUND = "background"
    KILL = "kill"
    LIST_PROCESSES = "list-processes"

    @property
    def requires_command(self) -> bool:
        return self in (Verb.EXECUTE, Verb.INTERACTIVE, Verb.BACKGROUND)


def normalize_verb(raw: str) -> str:
    """Lower-case a raw verb and map ``list_processes`` onto ``list-processes``."""
    return raw.strip().lower().replace("_", "-")


@dataclass(frozen=True)
class Operation:
    """
    A requested action extracted from model output.

    ``error`` is set by the parser when the directive could not be decoded;
    such operations are reported, never executed.
    """

    verb: str
    command: str | None = None
    working_dir: str | None = None
    timeout_ms: int | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    process_id: str | None = None
    input: str | None = None
    error: str | None = None

    @classmethod
    def invalid(cls, message: str, verb: str = "") -> Operation:
        """Build an operation that only carries a decode error."""
        return cls(verb=verb, error=message)

    @classmethod
    def execute(cls, command: str) -> Operation:
        return cls(verb=Verb.EXECUTE.value, command=command)

    @property
    def known_verb(self) -> Verb | None:
        """The verb as a ``Verb`` member, or None when it is not recognised."""
        try:
            return Verb(self.verb)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Immutable outcome of one Operation."""

    success: bool
    stdout: str
    stderr: str
    exit_code: int | None
    execution_time_ms: int
    working_dir: str
    process_id: str | None = None
    command: str | None = None
    timed_out: bool = False
    truncated: bool = False

    @classmethod
    def failure(
        cls,
        message: str,
        working_dir: str,
        *,
        command: str | None = None,
        process_id: str | None = None,
        execution_time_ms: int = 0,
    ) -> ExecutionResult:
        """Result for an operation rejected before (or instead of) running."""
        return cls(
            success=False,
            stdout="",
            stderr=message,
            exit_code=-1,
            execution_time_ms=execution_time_ms,
            working_dir=working_dir,
            process_id=process_id,
            command=command,
        )

    @property
    def message(self) -> str:
        """The most relevant text for a human: stderr on failure, stdout otherwise."""
        if not self.success and self.stderr:
            return self.stderr
        return self.stdout


@dataclass(frozen=True, slots=True)
class ProcessInfo:
    """Snapshot of one tracked process."""

    id: str
    pid: int | None
    alive: bool
    command: str
    started_at: datetime


@dataclass
class TerminalToolkit:
    """
    Toolkit returned by create_terminal(), wiring the core together.

    Attributes:
        dispatcher: Runs parsed operations against the shared registry.
        tool_prompt: Generated instructions telling the LLM how to write directives.
        security: The security policy in effect.
        config: Limits and defaults in effect.
    """

    dispatcher: CommandDispatcher
    tool_prompt: str
    security: SecurityPolicy
    config: TerminalConfig
    _closed: bool = field(default=False, init=False, repr=False)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ExecutionError("Terminal toolkit has been closed")

    async def process_reply(self, text: str) -> list[ExecutionResult]:
        """Parse a model reply and run every directive found in it."""
        self._ensure_open()
        return await self.dispatcher.run_directives(text)

    async def reply_with_results(self, text: str) -> str:
        """Return the reply with the rendered results of its directives appended."""
        from termops.render import format_results

        results = await self.process_reply(text)
        if not results:
            return text
        return f"{text}\n\n{format_results(results)}"

    async def run(
        self,
        command: str,
        *,
        verb: Verb = Verb.EXECUTE,
        working_dir: str | None = None,
        timeout_ms: int | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a single command as if it came from a directive."""
        self._ensure_open()
        operation = Operation(
            verb=verb.value,
            command=command,
            working_dir=working_dir,
            timeout_ms=timeout_ms,
            env=dict(env or {}),
        )
        [result] = await self.dispatcher.dispatch([operation])
        return result

    def history(self, limit: int = 10) -> list[ExecutionResult]:
        """Return the most recent results."""
        return self.dispatcher.history(limit)

    async def close(self) -> None:
        """
        Terminate every tracked process.

        Idempotent - safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        await self.dispatcher.registry.terminate_all()

    async def __aenter__(self) -> TerminalToolkit:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
