"""Pytest configuration and fixtures for termops tests."""

from __future__ import annotations

import asyncio
import os
import signal
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable, Generator

import pytest
import pytest_asyncio

from termops import (
    CommandDispatcher,
    CommandRunner,
    ProcessRegistry,
    SecurityPolicy,
    TerminalConfig,
    TerminalToolkit,
    create_terminal,
)

Spawn = Callable[[str], Awaitable[asyncio.subprocess.Process]]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="termops_test_") as tmp:
        yield Path(tmp).resolve()


@pytest.fixture
def config(temp_dir: Path) -> TerminalConfig:
    """Config with short limits so timeout tests stay fast."""
    return TerminalConfig(
        base_dir=temp_dir,
        max_timeout_ms=5000,
        max_output_bytes=4096,
        grace_period_ms=300,
        history_size=50,
        safe_roots=(temp_dir,),
    )


@pytest.fixture
def policy(config: TerminalConfig) -> SecurityPolicy:
    """Standard policy rooted at the test directory."""
    return SecurityPolicy(safe_roots=config.safe_roots)


@pytest_asyncio.fixture
async def registry(config: TerminalConfig) -> AsyncGenerator[ProcessRegistry, None]:
    """Create a ProcessRegistry that is emptied after the test."""
    registry = ProcessRegistry(grace_period_ms=config.grace_period_ms)
    try:
        yield registry
    finally:
        await registry.terminate_all()


@pytest.fixture
def runner(registry: ProcessRegistry, config: TerminalConfig) -> CommandRunner:
    return CommandRunner(registry, config)


@pytest.fixture
def dispatcher(
    runner: CommandRunner, policy: SecurityPolicy, config: TerminalConfig
) -> CommandDispatcher:
    return CommandDispatcher(runner, policy=policy, config=config)


@pytest_asyncio.fixture
async def toolkit(config: TerminalConfig) -> AsyncGenerator[TerminalToolkit, None]:
    """Create a TerminalToolkit for testing."""
    toolkit = await create_terminal(config=config, discover=False)
    try:
        yield toolkit
    finally:
        await toolkit.close()


@pytest_asyncio.fixture
async def spawn(temp_dir: Path) -> AsyncGenerator[Spawn, None]:
    """Start raw child processes in their own process group; killed on teardown."""
    procs: list[asyncio.subprocess.Process] = []

    async def _spawn(command: str) -> asyncio.subprocess.Process:
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=temp_dir,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        procs.append(proc)
        return proc

    try:
        yield _spawn
    finally:
        for proc in procs:
            if proc.returncode is None:
                try:
                    os.killpg(proc.pid, signal.SIGKILL)
                except ProcessLookupError:
                    pass
                await proc.wait()


def pid_alive(pid: int) -> bool:
    """True if ``pid`` exists and is not a zombie."""
    try:
        with open(f"/proc/{pid}/stat") as fh:
            return fh.read().rsplit(")", 1)[1].split()[0] != "Z"
    except FileNotFoundError:
        return False
    except OSError:
        pass
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.05)
    return predicate()
