"""
Registry of child processes started by the runner.

The registry is the single owner of every tracked process handle. It is an
explicit object (one per application) rather than module state, so tests
and separate applications get isolated process tables.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import secrets
import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from termops._types import ProcessInfo
from termops.config import DEFAULT_GRACE_PERIOD_MS
from termops.errors import DuplicateProcessError, KillFailed, ProcessNotFound

logger = logging.getLogger(__name__)

_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


def send_signal(handle: asyncio.subprocess.Process, sig: int, *, group: bool) -> bool:
    """
    Deliver ``sig`` to a child, or to its whole process group.

    Returns:
        False if the process was already gone, True otherwise.

    Raises:
        OSError: If the signal could not be delivered for another reason.
    """
    if handle.returncode is not None:
        return False
    try:
        if group and hasattr(os, "killpg"):
            os.killpg(handle.pid, sig)
        else:
            handle.send_signal(sig)
    except ProcessLookupError:
        return False
    return True


async def escalate(handle: asyncio.subprocess.Process, grace: float, *, group: bool) -> int:
    """
    Wait out the grace window after SIGTERM, then SIGKILL if still running.

    Returns the exit status. Cancelling the awaiting task before the window
    elapses prevents the SIGKILL.
    """
    try:
        return await asyncio.wait_for(handle.wait(), timeout=grace)
    except asyncio.TimeoutError:
        logger.warning(f"PID {handle.pid} ignored SIGTERM for {grace:g}s, sending SIGKILL")
        send_signal(handle, _SIGKILL, group=group)
        return await handle.wait()


@dataclass
class TrackedProcess:
    """A live child process owned by the registry."""

    id: str
    handle: asyncio.subprocess.Process
    command: str = ""
    owns_group: bool = True
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    escalation: asyncio.Task[int] | None = field(default=None, repr=False)
    reaper: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def alive(self) -> bool:
        return self.handle.returncode is None

    def info(self) -> ProcessInfo:
        return ProcessInfo(
            id=self.id,
            pid=self.handle.pid,
            alive=self.alive,
            command=self.command,
            started_at=self.started_at,
        )


class ProcessRegistry:
    """
    In-memory table of tracked processes keyed by generated id.

    Every public call takes the internal lock, so register/remove are atomic
    with respect to each other even when called from another thread.

    Example:
        >>> registry = ProcessRegistry(grace_period_ms=5000)
        >>> process_id = registry.next_id("bg")
        >>> registry.register(process_id, proc, command="sleep 60", watch=True)
        >>> await registry.terminate(process_id)
    """

    def __init__(self, *, grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS) -> None:
        self._grace = grace_period_ms / 1000
        self._entries: dict[str, TrackedProcess] = {}
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def next_id(self, prefix: str = "proc") -> str:
        """Generate a process id that has not been handed out before."""
        with self._lock:
            n = next(self._counter)
        if prefix == "bg":
            return f"bg_{n}_{secrets.token_hex(3)}"
        return f"{prefix}_{n}"

    def register(
        self,
        process_id: str,
        handle: asyncio.subprocess.Process,
        *,
        command: str = "",
        owns_group: bool = True,
        watch: bool = False,
    ) -> TrackedProcess:
        """
        Start tracking a process.

        Args:
            process_id: Id from ``next_id``.
            handle: The spawned process.
            command: Command line, for listings.
            owns_group: The child leads its own process group; signals go to the group.
            watch: Remove the entry automatically when the process exits.

        Raises:
            DuplicateProcessError: If ``process_id`` is already tracked.
        """
        entry = TrackedProcess(id=process_id, handle=handle, command=command, owns_group=owns_group)
        with self._lock:
            if process_id in self._entries:
                raise DuplicateProcessError(process_id)
            self._entries[process_id] = entry
        if watch:
            entry.reaper = asyncio.get_running_loop().create_task(self._reap(entry))
        logger.debug(f"Tracking {process_id} (PID {handle.pid}): {command}")
        return entry

    async def _reap(self, entry: TrackedProcess) -> None:
        returncode = await entry.handle.wait()
        logger.info(f"Process {entry.id} (PID {entry.handle.pid}) exited with {returncode}")
        self._discard(entry)

    def get(self, process_id: str) -> TrackedProcess | None:
        with self._lock:
            return self._entries.get(process_id)

    def remove(self, process_id: str) -> TrackedProcess | None:
        """Stop tracking a process. Idempotent; cancels a pending SIGKILL."""
        with self._lock:
            entry = self._entries.pop(process_id, None)
        if entry is not None:
            self._cancel_escalation(entry)
        return entry

    def _discard(self, entry: TrackedProcess) -> None:
        # Only drop the mapping if it still points at this entry
        with self._lock:
            if self._entries.get(entry.id) is entry:
                del self._entries[entry.id]
        self._cancel_escalation(entry)

    @staticmethod
    def _cancel_escalation(entry: TrackedProcess) -> None:
        task = entry.escalation
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def list(self) -> list[ProcessInfo]:
        with self._lock:
            entries = list(self._entries.values())
        return [entry.info() for entry in entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, process_id: object) -> bool:
        with self._lock:
            return process_id in self._entries

    async def terminate(self, process_id: str) -> int | None:
        """
        Terminate a tracked process: SIGTERM, then SIGKILL after the grace window.

        The escalation runs as its own task. If the process exits, or the entry
        is removed, before the window elapses the task is cancelled and no
        SIGKILL is sent.

        Returns:
            The exit status, or None if the escalation was cancelled.

        Raises:
            ProcessNotFound: If no process is tracked under ``process_id``.
            KillFailed: If SIGTERM could not be delivered.
        """
        entry = self.get(process_id)
        if entry is None:
            raise ProcessNotFound(process_id)

        try:
            delivered = send_signal(entry.handle, signal.SIGTERM, group=entry.owns_group)
        except OSError as exc:
            raise KillFailed(process_id, str(exc)) from exc

        if not delivered:
            self._discard(entry)
            return entry.handle.returncode

        logger.info(f"Sent SIGTERM to {process_id} (PID {entry.handle.pid})")

        if entry.escalation is None or entry.escalation.done():
            entry.escalation = asyncio.get_running_loop().create_task(
                escalate(entry.handle, self._grace, group=entry.owns_group)
            )
        escalation = entry.escalation
        # asyncio.wait does not raise when the escalation task is cancelled
        await asyncio.wait({escalation})
        self._discard(entry)

        if escalation.cancelled():
            return entry.handle.returncode
        return escalation.result()

    async def terminate_all(self) -> None:
        """Terminate every tracked process concurrently."""
        with self._lock:
            ids = list(self._entries)
        if not ids:
            return
        outcomes = await asyncio.gather(*(self.terminate(pid) for pid in ids), return_exceptions=True)
        for pid, outcome in zip(ids, outcomes):
            if isinstance(outcome, ProcessNotFound):
                continue
            if isinstance(outcome, BaseException):
                logger.warning(f"Could not terminate {pid}: {outcome}")
