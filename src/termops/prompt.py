"""
Directive instructions and host tool discovery for LLM prompting.

Builds the system-prompt section that teaches a model how to embed terminal
directives in its replies, listing which common tools exist on this host.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from termops.parser import DIRECTIVE_TAGS

# Tool name -> one-line hint shown to the model
KNOWN_TOOLS: dict[str, str] = {
    # Files and search
    "ls": "show directory entries",
    "cat": "print a file",
    "head": "print the start of a file",
    "tail": "print the end of a file, or follow a log with -f",
    "find": "walk a directory tree",
    "grep": "search text with regular expressions",
    "rg": "recursive search that respects .gitignore",
    "sed": "edit a stream in place",
    "awk": "column-oriented text processing",
    "jq": "query JSON",
    "tar": "pack and unpack archives",
    # Projects and builds
    "git": "source control",
    "make": "run Makefile targets",
    "python3": "run Python scripts",
    "pip": "install Python packages",
    "node": "run JavaScript",
    "npm": "install JavaScript packages and run package scripts",
    "docker": "build and run containers",
    # Host state
    "ps": "inspect running processes",
    "df": "free space per filesystem",
    "du": "disk usage of a directory",
    "curl": "make HTTP requests",
}

DIRECTIVE_FORMATS = """\
Use these formats for terminal operations.

JSON format (for options or process control):
```terminal
{
  "operation": "execute|interactive|background|kill|list_processes",
  "command": "your_command_here",
  "workingDir": "/path/to/working/directory",
  "timeout": 30000,
  "env": {"ENV_VAR": "value"},
  "processId": "id_for_kill_operation"
}
```

Simple format (one command per line, # starts a comment):
```bash
ls -la
pwd
whoami
```"""

OPERATIONS = {
    "execute": "Run a command and wait for completion",
    "interactive": "Run a command that reads stdin (pass it via \"input\")",
    "background": "Start a long-running command and return its process id",
    "kill": "Terminate a tracked process by its process id",
    "list_processes": "Show all tracked processes",
}


def discover_tools(candidates: dict[str, str] | None = None) -> set[str]:
    """
    Discover which tools are available on this host.

    Uses ``shutil.which`` against the PATH of the current process.

    Args:
        candidates: Tool names to check. Defaults to KNOWN_TOOLS.

    Returns:
        Set of available tool names.
    """
    names = candidates if candidates is not None else KNOWN_TOOLS
    return {name for name in names if shutil.which(name)}


def generate_directive_prompt(
    *,
    base_dir: Path | str | None = None,
    timeout_ms: int | None = None,
    available: set[str] | None = None,
    extra_instructions: str | None = None,
) -> str:
    """
    Generate the LLM-facing instructions for terminal directives.

    The prompt includes:
    - Both directive formats and the accepted block tags
    - The available operations
    - Default working directory and timeout, when given
    - Tools found on the host
    - Any extra instructions provided

    Args:
        base_dir: Default working directory to advertise.
        timeout_ms: Default timeout to advertise.
        available: Tool names found by ``discover_tools``.
        extra_instructions: Additional context for the LLM.
    """
    lines: list[str] = ["## Terminal Operations", DIRECTIVE_FORMATS, ""]
    lines.append(f"Accepted block tags: {', '.join(sorted(DIRECTIVE_TAGS))}")
    lines.append("")
    lines.append("Available operations:")
    lines.extend(f"- {name}: {description}" for name, description in OPERATIONS.items())

    defaults = []
    if base_dir is not None:
        defaults.append(f"working directory {base_dir}")
    if timeout_ms is not None:
        defaults.append(f"timeout {timeout_ms}ms")
    if defaults:
        lines.append("")
        lines.append(f"Defaults: {', '.join(defaults)}")

    lines.append("")
    lines.append(
        "Dangerous commands are blocked, long commands are killed on timeout, "
        "and output is size-limited."
    )

    if available:
        lines.append("")
        lines.append("Tools on this host:")
        lines.extend(f"- {name}: {KNOWN_TOOLS.get(name, '')}".rstrip(": ") for name in sorted(available))

    if extra_instructions:
        lines.append("")
        lines.append(extra_instructions)

    return "\n".join(lines)
