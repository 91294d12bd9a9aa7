"""Tests for result rendering."""

from __future__ import annotations

from datetime import datetime, timezone

from termops._types import ExecutionResult, ProcessInfo
from termops.render import (
    format_history,
    format_process_table,
    format_result,
    format_results,
)


def make_result(**overrides) -> ExecutionResult:
    fields = dict(
        success=True,
        stdout="hello\n",
        stderr="",
        exit_code=0,
        execution_time_ms=12,
        working_dir="/tmp/work",
        command="echo hello",
    )
    fields.update(overrides)
    return ExecutionResult(**fields)


def test_success_entry() -> None:
    text = format_result(make_result(), 1)

    assert text.startswith("**Command 1: `echo hello`** (12ms):")
    assert "✅ Exit Code: 0" in text
    assert "📤 **Output:**\n```\nhello\n\n```" in text
    assert "📁 **Working Directory:** /tmp/work" in text
    assert "Process ID" not in text


def test_failure_entry_shows_stderr_only() -> None:
    text = format_result(make_result(success=False, exit_code=2, stdout="partial", stderr="boom"))

    assert "❌ Exit Code: 2" in text
    assert "📤 **Error:**\n```\nboom\n```" in text
    assert "partial" not in text


def test_missing_exit_code_and_timeout() -> None:
    text = format_result(make_result(success=False, exit_code=None, timed_out=True, stderr="late"))
    assert "❌ Exit Code: none" in text
    assert "⏱️ Timed out" in text


def test_process_id_line() -> None:
    text = format_result(make_result(process_id="bg_1_abcdef", exit_code=None))
    assert "🔖 **Process ID:** bg_1_abcdef" in text


def test_long_output_is_clipped() -> None:
    text = format_result(make_result(stdout="x" * 2500))
    assert "x" * 2000 + "\n... (truncated)" in text
    assert "x" * 2001 not in text


def test_long_error_is_clipped() -> None:
    text = format_result(make_result(success=False, exit_code=1, stderr="e" * 1500))
    assert "e" * 1000 + "\n... (truncated)" in text
    assert "e" * 1001 not in text


def test_results_section() -> None:
    text = format_results([make_result(), make_result(command="pwd")])

    assert text.startswith("---\n💻 **Terminal Operations:**\n\n**Command 1:")
    assert "**Command 2: `pwd`**" in text


def test_no_results_render_nothing() -> None:
    assert format_results([]) == ""


def test_failure_without_command() -> None:
    result = ExecutionResult.failure("Kill operation requires processId", "/tmp")
    text = format_result(result, 3)
    assert text.startswith("**Command 3** (0ms):")
    assert "❌ Exit Code: -1" in text


def test_process_table() -> None:
    started = datetime(2024, 1, 1, tzinfo=timezone.utc)
    processes = [
        ProcessInfo(id="bg_1_aaaaaa", pid=100, alive=True, command="npm run dev", started_at=started),
        ProcessInfo(id="bg_2_bbbbbb", pid=101, alive=False, command="sleep 1", started_at=started),
    ]
    assert format_process_table(processes) == (
        "📋 Active Processes:\n"
        "🔄 bg_1_aaaaaa: PID 100 (running) npm run dev\n"
        "🔄 bg_2_bbbbbb: PID 101 (exited) sleep 1"
    )
    assert format_process_table([]) == "📋 No active processes"


def test_history() -> None:
    results = [make_result(command="ls"), make_result(command="false", success=False, exit_code=1)]
    assert format_history(results) == (
        "📋 **Command History (Last 2):**\n1. ls (✅)\n2. false (❌)"
    )
    assert format_history([]) == "📋 Command history is empty"


def test_message_property() -> None:
    assert make_result().message == "hello\n"
    assert make_result(success=False, stderr="bad").message == "bad"
