"""
Routes parsed operations to the runner or the process registry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Sequence

from termops._types import ExecutionResult, Operation, Verb
from termops.config import TerminalConfig
from termops.errors import KillFailed, ProcessNotFound, WorkingDirectoryError
from termops.parser import parse
from termops.registry import ProcessRegistry
from termops.render import format_process_table
from termops.runner import CommandRunner, RunMode
from termops.security.policy import SecurityPolicy

logger = logging.getLogger(__name__)

_RUN_MODES = {
    Verb.EXECUTE: RunMode.EXECUTE,
    Verb.INTERACTIVE: RunMode.INTERACTIVE,
    Verb.BACKGROUND: RunMode.BACKGROUND,
}


class CommandDispatcher:
    """
    Interprets each Operation's verb and aggregates the results.

    ``dispatch`` is total: for any sequence of operations it returns a list
    of results of the same length and order, and never raises for a failure
    inside one operation.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        policy: SecurityPolicy | None = None,
        config: TerminalConfig | None = None,
    ) -> None:
        self._runner = runner
        self._config = config or TerminalConfig()
        if policy is None:
            policy = SecurityPolicy(
                safe_roots=self._config.safe_roots,
                confine_to_safe_roots=self._config.confine_to_safe_roots,
            )
        self._policy = policy
        self._history: deque[ExecutionResult] = deque(maxlen=self._config.history_size)

    @property
    def registry(self) -> ProcessRegistry:
        return self._runner.registry

    @property
    def policy(self) -> SecurityPolicy:
        return self._policy

    async def run_directives(self, text: str) -> list[ExecutionResult]:
        """Parse ``text`` for directives and dispatch them in order."""
        return await self.dispatch(parse(text))

    async def dispatch(
        self, operations: Sequence[Operation], *, concurrent: bool = False
    ) -> list[ExecutionResult]:
        """
        Run operations and return one result per operation.

        Args:
            operations: Parsed operations.
            concurrent: Run them all at once instead of one after another.
                Results keep the input order either way.
        """
        if concurrent:
            results = list(await asyncio.gather(*(self._dispatch_one(op) for op in operations)))
        else:
            results = [await self._dispatch_one(op) for op in operations]
        self._history.extend(results)
        return results

    async def _dispatch_one(self, operation: Operation) -> ExecutionResult:
        try:
            return await self._route(operation)
        except Exception as exc:
            logger.exception(f"Unexpected failure while dispatching {operation.verb!r}")
            return ExecutionResult.failure(
                f"Internal error: {exc}", str(self._config.base_dir), command=operation.command
            )

    async def _route(self, operation: Operation) -> ExecutionResult:
        base_dir = str(self._config.base_dir)
        if operation.error:
            return ExecutionResult.failure(operation.error, base_dir)

        verb = operation.known_verb
        if verb is None:
            return ExecutionResult.failure(f"Unknown terminal operation: {operation.verb}", base_dir)
        if verb is Verb.KILL:
            return await self._kill(operation)
        if verb is Verb.LIST_PROCESSES:
            return ExecutionResult(
                success=True,
                stdout=format_process_table(self.registry.list()),
                stderr="",
                exit_code=0,
                execution_time_ms=0,
                working_dir=base_dir,
            )
        if verb.requires_command:
            return await self._run(operation, verb)
        return ExecutionResult.failure(f"Unknown terminal operation: {operation.verb}", base_dir)

    async def _run(self, operation: Operation, verb: Verb) -> ExecutionResult:
        started = time.monotonic()
        command = (operation.command or "").strip()
        requested_dir = operation.working_dir or str(self._config.base_dir)

        if not command:
            return ExecutionResult.failure(
                f"{verb.value.capitalize()} operation requires command", requested_dir
            )

        verdict = self._policy.validate_command(command)
        if not verdict.safe:
            logger.warning(f"Blocked command ({verdict.reason}): {command}")
            return ExecutionResult.failure(
                verdict.reason or "Command not allowed",
                requested_dir,
                command=command,
                execution_time_ms=int((time.monotonic() - started) * 1000),
            )

        try:
            working_dir = self._policy.validate_working_dir(requested_dir)
        except WorkingDirectoryError as exc:
            return ExecutionResult.failure(str(exc), requested_dir, command=command)

        return await self._runner.run(
            command,
            mode=_RUN_MODES[verb],
            working_dir=working_dir,
            timeout_ms=operation.timeout_ms,
            env=operation.env,
            input=operation.input,
        )

    async def _kill(self, operation: Operation) -> ExecutionResult:
        base_dir = str(self._config.base_dir)
        process_id = (operation.process_id or "").strip()
        if not process_id:
            return ExecutionResult.failure("Kill operation requires processId", base_dir)

        started = time.monotonic()
        try:
            await self.registry.terminate(process_id)
        except (ProcessNotFound, KillFailed) as exc:
            return ExecutionResult.failure(str(exc), base_dir, process_id=process_id)

        return ExecutionResult(
            success=True,
            stdout=f"Process {process_id} terminated",
            stderr="",
            exit_code=0,
            execution_time_ms=int((time.monotonic() - started) * 1000),
            working_dir=base_dir,
            process_id=process_id,
        )

    def history(self, limit: int = 10) -> list[ExecutionResult]:
        """Return up to ``limit`` of the most recent results, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def clear_history(self) -> None:
        self._history.clear()
