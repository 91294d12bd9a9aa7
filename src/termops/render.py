"""
Human-readable rendering of execution results for chat transcripts.

ExecutionResult stays plain data; everything with glyphs, markdown or
clipping lives here.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from termops._types import ExecutionResult, ProcessInfo

STDOUT_PREVIEW_CHARS = 2000
STDERR_PREVIEW_CHARS = 1000


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}\n... (truncated)"


def format_result(result: ExecutionResult, index: int = 1) -> str:
    """Render one result as a markdown entry."""
    label = f"Command {index}"
    if result.command:
        label += f": `{result.command}`"
    lines = [f"**{label}** ({result.execution_time_ms}ms):"]

    status = "✅" if result.success else "❌"
    exit_code = "none" if result.exit_code is None else str(result.exit_code)
    lines.append(f"{status} Exit Code: {exit_code}")
    if result.timed_out:
        lines.append("⏱️ Timed out")

    if result.success:
        if result.stdout:
            lines.append(f"📤 **Output:**\n```\n{_clip(result.stdout, STDOUT_PREVIEW_CHARS)}\n```")
    elif result.stderr:
        lines.append(f"📤 **Error:**\n```\n{_clip(result.stderr, STDERR_PREVIEW_CHARS)}\n```")

    if result.process_id:
        lines.append(f"🔖 **Process ID:** {result.process_id}")
    lines.append(f"📁 **Working Directory:** {result.working_dir}")
    return "\n".join(lines)


def format_results(results: Sequence[ExecutionResult]) -> str:
    """Render the 'Terminal Operations' section appended to a reply."""
    if not results:
        return ""
    entries = [format_result(result, i) for i, result in enumerate(results, start=1)]
    return "---\n💻 **Terminal Operations:**\n\n" + "\n\n".join(entries)


def format_process_table(processes: Iterable[ProcessInfo]) -> str:
    """Render the registry contents for a ``list-processes`` operation."""
    rows = [
        f"🔄 {p.id}: PID {p.pid} ({'running' if p.alive else 'exited'}) {p.command}".rstrip()
        for p in processes
    ]
    if not rows:
        return "📋 No active processes"
    return "📋 Active Processes:\n" + "\n".join(rows)


def format_history(results: Sequence[ExecutionResult]) -> str:
    """Render recent results as a numbered list."""
    if not results:
        return "📋 Command history is empty"
    lines = [f"📋 **Command History (Last {len(results)}):**"]
    for i, result in enumerate(results, start=1):
        lines.append(f"{i}. {result.command or '(no command)'} ({'✅' if result.success else '❌'})")
    return "\n".join(lines)
