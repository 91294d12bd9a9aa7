"""Tests for the create_terminal API."""

from __future__ import annotations

from pathlib import Path

import pytest

from termops import ExecutionError, SecurityPolicy, TerminalConfig, TerminalToolkit, create_terminal
from termops._types import SecurityLevel, Verb


class TestCreateTerminal:
    """Tests for the create_terminal factory function."""

    async def test_creates_toolkit(self, toolkit: TerminalToolkit) -> None:
        """Should create a working toolkit."""
        result = await toolkit.run("echo 'hello'")
        assert "hello" in result.stdout

    async def test_defaults_to_base_dir(self, toolkit: TerminalToolkit, temp_dir: Path) -> None:
        result = await toolkit.run("pwd")
        assert result.exit_code == 0
        assert Path(result.stdout.strip()).resolve() == temp_dir

    async def test_reads_config_from_environment(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TERMINAL_BASE_DIR", str(temp_dir))
        monkeypatch.setenv("TERMINAL_MAX_TIMEOUT_MS", "1234")
        async with await create_terminal(discover=False) as toolkit:
            assert toolkit.config.base_dir == temp_dir
            assert toolkit.config.max_timeout_ms == 1234
            assert "timeout 1234ms" in toolkit.tool_prompt

    async def test_accepts_security_level(self, config: TerminalConfig) -> None:
        """Should accept SecurityLevel enum."""
        async with await create_terminal(
            config=config, security=SecurityLevel.STANDARD, discover=False
        ) as toolkit:
            result = await toolkit.run("rm -rf /")
            assert not result.success
            assert "Dangerous command" in result.stderr

    async def test_permissive_level(self, config: TerminalConfig) -> None:
        async with await create_terminal(
            config=config, security=SecurityLevel.PERMISSIVE, discover=False
        ) as toolkit:
            assert toolkit.security.level == SecurityLevel.PERMISSIVE
            # "halt" is deny-listed; permissive only logs it
            result = await toolkit.run("echo halt")
            assert result.success

    async def test_accepts_security_policy(self, config: TerminalConfig) -> None:
        """Should accept a custom SecurityPolicy."""
        policy = SecurityPolicy.paranoid(allowed={"echo"})
        async with await create_terminal(config=config, security=policy, discover=False) as toolkit:
            assert (await toolkit.run("echo allowed")).success
            blocked = await toolkit.run("ls")
            assert not blocked.success
            assert "allowlist" in blocked.stderr

    async def test_paranoid_level_requires_allowlist(self, config: TerminalConfig) -> None:
        with pytest.raises(ValueError, match="allowlist"):
            await create_terminal(config=config, security=SecurityLevel.PARANOID)

    async def test_policy_inherits_safe_roots(self, config: TerminalConfig) -> None:
        confined = config.with_overrides(confine_to_safe_roots=True)
        async with await create_terminal(config=confined, discover=False) as toolkit:
            assert toolkit.security.safe_roots == confined.safe_roots
            assert toolkit.security.confine_to_safe_roots
            result = await toolkit.run("pwd", working_dir="/")
            assert not result.success
            assert "Invalid working directory" in result.stderr

    async def test_caller_policy_is_not_mutated(self, config: TerminalConfig, temp_dir: Path) -> None:
        """A policy shared between toolkits keeps its own roots."""
        policy = SecurityPolicy.standard()
        confined = config.with_overrides(confine_to_safe_roots=True)

        async with await create_terminal(config=confined, security=policy, discover=False) as first:
            assert first.security is not policy
            assert first.security.confine_to_safe_roots

        assert policy.safe_roots == ()
        assert not policy.confine_to_safe_roots

        other = config.with_overrides(safe_roots=(temp_dir / "other",))
        async with await create_terminal(config=other, security=policy, discover=False) as second:
            assert second.security.safe_roots == (temp_dir / "other",)
            assert not second.security.confine_to_safe_roots

    async def test_includes_extra_instructions(self, config: TerminalConfig) -> None:
        async with await create_terminal(
            config=config, extra_instructions="Prefer rg over grep.", discover=False
        ) as toolkit:
            assert toolkit.tool_prompt.startswith("## Terminal Operations")
            assert "Prefer rg over grep." in toolkit.tool_prompt


class TestTerminalToolkit:
    async def test_process_reply(self, toolkit: TerminalToolkit) -> None:
        reply = 'Running two things.\n```bash\necho one\n```\n```terminal\n{"operation": "list_processes"}\n```'
        results = await toolkit.process_reply(reply)

        assert len(results) == 2
        assert results[0].stdout.strip() == "one"
        assert results[1].stdout == "📋 No active processes"

    async def test_reply_with_results(self, toolkit: TerminalToolkit) -> None:
        reply = "Here you go:\n```bash\necho rendered\n```"
        text = await toolkit.reply_with_results(reply)

        assert text.startswith(reply)
        assert "💻 **Terminal Operations:**" in text
        assert "rendered" in text

    async def test_reply_without_directives_is_unchanged(self, toolkit: TerminalToolkit) -> None:
        assert await toolkit.reply_with_results("No commands here.") == "No commands here."

    async def test_run_with_verb(self, toolkit: TerminalToolkit) -> None:
        result = await toolkit.run("sleep 30", verb=Verb.BACKGROUND)
        assert result.process_id is not None
        assert result.process_id in toolkit.dispatcher.registry

    async def test_history(self, toolkit: TerminalToolkit) -> None:
        await toolkit.run("echo a")
        await toolkit.run("echo b")
        assert [r.command for r in toolkit.history()] == ["echo a", "echo b"]

    async def test_close_terminates_background_processes(self, config: TerminalConfig) -> None:
        toolkit = await create_terminal(config=config, discover=False)
        result = await toolkit.run("sleep 30", verb=Verb.BACKGROUND)
        registry = toolkit.dispatcher.registry

        await toolkit.close()

        assert result.process_id not in registry
        assert len(registry) == 0

    async def test_close_is_idempotent(self, config: TerminalConfig) -> None:
        toolkit = await create_terminal(config=config, discover=False)
        await toolkit.close()
        await toolkit.close()

    async def test_closed_toolkit_refuses_work(self, config: TerminalConfig) -> None:
        toolkit = await create_terminal(config=config, discover=False)
        await toolkit.close()

        with pytest.raises(ExecutionError, match="closed"):
            await toolkit.run("echo nope")
        with pytest.raises(ExecutionError):
            await toolkit.process_reply("```bash\necho nope\n```")
