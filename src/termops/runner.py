"""
Subprocess-based command runner.

Runs one shell command as a child process using asyncio.subprocess, in one
of three modes, and always returns an ExecutionResult instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Mapping

from termops._types import ExecutionResult
from termops.config import TerminalConfig
from termops.errors import KillFailed, ProcessNotFound
from termops.registry import ProcessRegistry, escalate

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024
# How long to keep draining pipes after the process itself has exited
_DRAIN_TIMEOUT = 1.0


class RunMode(Enum):
    """How a command's process is wired and awaited."""

    EXECUTE = "execute"
    INTERACTIVE = "interactive"
    BACKGROUND = "background"


class OutputBuffer:
    """
    Accumulates a stream up to a byte limit.

    Bytes past the limit are counted but not stored.
    """

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._chunks: list[bytes] = []
        self._size = 0
        self.dropped = 0

    def feed(self, data: bytes) -> None:
        room = self._limit - self._size
        if room > 0:
            kept = data[:room]
            self._chunks.append(kept)
            self._size += len(kept)
        self.dropped += max(0, len(data) - max(room, 0))

    @property
    def truncated(self) -> bool:
        return self.dropped > 0

    def text(self) -> str:
        text = b"".join(self._chunks).decode("utf-8", errors="replace")
        if self.dropped:
            text += f"\n[output truncated: {self.dropped} bytes omitted]"
        return text


async def _drain(stream: asyncio.StreamReader | None, buffer: OutputBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        buffer.feed(chunk)


async def _finish_readers(readers: list[asyncio.Task[None]]) -> None:
    if not readers:
        return
    _, pending = await asyncio.wait(readers, timeout=_DRAIN_TIMEOUT)
    for task in pending:
        task.cancel()
    # Retrieve exceptions so they are not reported as never retrieved
    await asyncio.gather(*readers, return_exceptions=True)


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


class CommandRunner:
    """
    Executes commands as shell-interpreted child processes.

    Safety features:
    - Timeout enforcement with SIGTERM, then SIGKILL after a grace window
    - Output truncation to prevent memory exhaustion
    - Every non-blocking or in-flight process is tracked in the registry

    Validation against a SecurityPolicy is the caller's job (see
    CommandDispatcher); the runner executes what it is given.

    Example:
        >>> runner = CommandRunner(ProcessRegistry(), TerminalConfig())
        >>> result = await runner.run("ls -la", working_dir=Path.home())
        >>> print(result.stdout)
    """

    def __init__(self, registry: ProcessRegistry, config: TerminalConfig | None = None) -> None:
        self._registry = registry
        self._config = config or TerminalConfig()

    @property
    def registry(self) -> ProcessRegistry:
        return self._registry

    async def run(
        self,
        command: str,
        *,
        mode: RunMode = RunMode.EXECUTE,
        working_dir: Path | str | None = None,
        timeout_ms: int | None = None,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> ExecutionResult:
        """
        Run ``command`` and describe the outcome.

        Args:
            command: Shell command line.
            mode: Blocking, interactive or background execution.
            working_dir: Absolute directory to run in (created if missing).
                Defaults to the configured base directory.
            timeout_ms: Limit for execute/interactive modes, clamped to
                ``max_timeout_ms``. Ignored for background processes.
            env: Variables merged over the current environment.
            input: Text fed to stdin in interactive mode.

        Returns:
            ExecutionResult. Spawn errors, nonzero exits and timeouts are all
            reported through ``success``/``exit_code``/``stderr``.
        """
        started = time.monotonic()
        cwd = Path(working_dir) if working_dir is not None else self._config.base_dir
        timeout = self._effective_timeout(timeout_ms)
        full_env = {**os.environ, **(env or {})}

        logger.info(f"Executing ({mode.value}): {command}")
        logger.debug(f"Working directory: {cwd}")

        try:
            cwd.mkdir(parents=True, exist_ok=True)
            if mode is RunMode.BACKGROUND:
                return await self._run_background(command, cwd, full_env, started)
            return await self._run_attached(command, cwd, full_env, timeout, mode, input, started)
        except Exception as exc:
            logger.warning(f"Failed to run {command!r}: {exc}")
            return ExecutionResult.failure(
                str(exc) or type(exc).__name__,
                str(cwd),
                command=command,
                execution_time_ms=_elapsed_ms(started),
            )

    def _effective_timeout(self, timeout_ms: int | None) -> int:
        limit = self._config.max_timeout_ms
        if timeout_ms is None or timeout_ms <= 0:
            return limit
        return min(timeout_ms, limit)

    async def _run_background(
        self, command: str, cwd: Path, env: dict[str, str], started: float
    ) -> ExecutionResult:
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,  # Survives the parent, own process group
        )
        process_id = self._registry.next_id("bg")
        self._registry.register(process_id, proc, command=command, owns_group=True, watch=True)
        logger.info(f"Started background process {process_id} (PID {proc.pid})")

        return ExecutionResult(
            success=True,
            stdout=f"Process started in background with PID: {proc.pid}\nProcess ID: {process_id}",
            stderr="",
            exit_code=None,
            execution_time_ms=_elapsed_ms(started),
            working_dir=str(cwd),
            process_id=process_id,
            command=command,
        )

    async def _run_attached(
        self,
        command: str,
        cwd: Path,
        env: dict[str, str],
        timeout_ms: int,
        mode: RunMode,
        input: str | None,
        started: float,
    ) -> ExecutionResult:
        interactive = mode is RunMode.INTERACTIVE
        inherit = interactive and self._config.inherit_interactive_stdio

        if inherit:
            # Stay in the terminal's foreground process group
            proc = await asyncio.create_subprocess_shell(command, cwd=cwd, env=env)
        else:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.PIPE if interactive else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        owns_group = not inherit

        process_id = self._registry.next_id("proc")
        self._registry.register(process_id, proc, command=command, owns_group=owns_group)

        out = OutputBuffer(self._config.max_output_bytes)
        err = OutputBuffer(self._config.max_output_bytes)
        readers = [
            asyncio.create_task(_drain(proc.stdout, out)),
            asyncio.create_task(_drain(proc.stderr, err)),
        ]

        async def communicate() -> int:
            if proc.stdin is not None:
                await self._feed_stdin(proc.stdin, input)
            return await proc.wait()

        timed_out = False
        try:
            await asyncio.wait_for(communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(f"Command timed out after {timeout_ms}ms: {command}")
            await self._stop(process_id, proc, owns_group)
        except asyncio.CancelledError:
            logger.warning(f"Command cancelled, stopping PID {proc.pid}: {command}")
            await asyncio.shield(self._stop(process_id, proc, owns_group))
            raise
        finally:
            await _finish_readers(readers)
            self._registry.remove(process_id)

        returncode = proc.returncode
        # Negative return codes mean death by signal
        exit_code = None if timed_out or returncode is None or returncode < 0 else returncode

        stdout = out.text()
        stderr = err.text()
        if timed_out:
            note = f"Command timed out after {timeout_ms}ms"
            stderr = f"{stderr.rstrip()}\n{note}" if stderr.strip() else note
        elif inherit:
            stdout = f"Interactive command completed with exit code: {exit_code}"

        return ExecutionResult(
            success=exit_code == 0,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            execution_time_ms=_elapsed_ms(started),
            working_dir=str(cwd),
            process_id=process_id if interactive else None,
            command=command,
            timed_out=timed_out,
            truncated=out.truncated or err.truncated,
        )

    @staticmethod
    async def _feed_stdin(stdin: asyncio.StreamWriter, text: str | None) -> None:
        try:
            if text:
                stdin.write(text.encode())
                await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Process closed stdin before reading all input")
        finally:
            stdin.close()

    async def _stop(self, process_id: str, proc: asyncio.subprocess.Process, owns_group: bool) -> None:
        try:
            await self._registry.terminate(process_id)
        except ProcessNotFound:
            # Already killed through the registry by someone else
            await proc.wait()
        except KillFailed as exc:
            logger.warning(f"{exc}; escalating to SIGKILL after the grace window")
            await escalate(proc, self._config.grace_period, group=owns_group)
