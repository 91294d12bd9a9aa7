"""
Directive extraction from model output.

Directives live in fenced blocks tagged ``terminal``, ``bash``, ``shell`` or
``cmd``. A block whose body starts with ``{`` is a single JSON object
(the structured form); anything else is one command per line (the plain
form). Parsing happens in two phases: the text is scanned line by line for
fenced spans, then each span's body is decoded on its own, so a broken
block never affects its neighbours.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Iterator

from termops._types import Operation, normalize_verb

logger = logging.getLogger(__name__)

FENCE = "```"
DIRECTIVE_TAGS: frozenset[str] = frozenset({"terminal", "bash", "shell", "cmd"})
COMMENT_PREFIX = "#"


def _is_closing_fence(line: str) -> bool:
    # A bare run of three or more backticks
    stripped = line.strip()
    return stripped.startswith(FENCE) and set(stripped) == {"`"}


def iter_fenced_blocks(text: str) -> Iterator[tuple[str, str]]:
    """
    Yield ``(tag, body)`` for every closed fenced block, in order.

    The tag is lower-cased and empty for untagged fences. A block may also be
    written on one line: ```` ```terminal {"operation": "list_processes"}``` ````.
    Unclosed fences yield nothing.
    """
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped.startswith(FENCE):
            i += 1
            continue

        info = stripped[len(FENCE):]
        parts = info.split(None, 1)
        tag = parts[0].lower() if parts else ""
        rest = parts[1] if len(parts) > 1 else ""

        if tag.endswith(FENCE):
            # ```bash``` with nothing inside
            yield tag[: -len(FENCE)], ""
            i += 1
            continue
        if rest.rstrip().endswith(FENCE):
            yield tag, rest.rstrip()[: -len(FENCE)]
            i += 1
            continue

        body = [rest] if rest else []
        j = i + 1
        while j < len(lines) and not _is_closing_fence(lines[j]):
            body.append(lines[j])
            j += 1
        if j >= len(lines):
            return
        yield tag, "\n".join(body)
        i = j + 1


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _decode_timeout(data: dict[str, Any]) -> int | None:
    value = data.get("timeout")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError("'timeout' must be a number of milliseconds")
    if value != int(value) or value <= 0:
        raise ValueError("'timeout' must be a positive integer")
    return int(value)


def _decode_env(data: dict[str, Any]) -> dict[str, str]:
    value = data.get("env")
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("'env' must be an object")
    env: dict[str, str] = {}
    for key, item in value.items():
        if isinstance(item, (dict, list)) or item is None:
            raise ValueError(f"env value for '{key}' must be a scalar")
        env[str(key)] = item if isinstance(item, str) else json.dumps(item)
    return env


def parse_structured(body: str) -> Operation:
    """
    Decode a structured directive body into an Operation.

    Never raises: problems produce an Operation with ``error`` set.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        return Operation.invalid(
            f"Terminal command error: {exc.msg} (line {exc.lineno} column {exc.colno})"
        )
    if not isinstance(data, dict):
        return Operation.invalid("Terminal command error: directive must be a JSON object")

    raw_verb = data.get("operation", data.get("verb"))
    if raw_verb is None or (isinstance(raw_verb, str) and not raw_verb.strip()):
        return Operation.invalid("Invalid terminal command: missing operation")
    if not isinstance(raw_verb, str):
        return Operation.invalid("Invalid terminal command: 'operation' must be a string")
    verb = normalize_verb(raw_verb)

    try:
        return Operation(
            verb=verb,
            command=_optional_str(data, "command"),
            working_dir=_optional_str(data, "workingDir"),
            timeout_ms=_decode_timeout(data),
            env=_decode_env(data),
            process_id=_optional_str(data, "processId"),
            input=_optional_str(data, "input"),
        )
    except ValueError as exc:
        return Operation.invalid(f"Terminal command error: {exc}", verb=verb)


def parse_plain(body: str) -> list[Operation]:
    """One execute Operation per non-blank, non-comment line."""
    operations = []
    for line in body.splitlines():
        command = line.strip()
        if not command or command.startswith(COMMENT_PREFIX):
            continue
        operations.append(Operation.execute(command))
    return operations


def parse(text: str) -> list[Operation]:
    """
    Extract every directive in ``text`` as a list of Operations.

    Pure and total: malformed structured blocks become Operations carrying
    an ``error`` message, and operations keep their order of appearance.

    Example:
        >>> parse("```bash\\nls -la\\n# comment\\npwd\\n```")
        [Operation(verb='execute', command='ls -la', ...), Operation(verb='execute', command='pwd', ...)]
    """
    operations: list[Operation] = []
    for tag, body in iter_fenced_blocks(text):
        if tag not in DIRECTIVE_TAGS:
            continue
        if body.strip().startswith("{"):
            operation = parse_structured(body.strip())
            logger.debug(f"Structured directive in '{tag}' block: {operation}")
            operations.append(operation)
        else:
            plain = parse_plain(body)
            logger.debug(f"Plain '{tag}' block with {len(plain)} command(s)")
            operations.extend(plain)
    return operations


__all__ = [
    "DIRECTIVE_TAGS",
    "iter_fenced_blocks",
    "parse",
    "parse_plain",
    "parse_structured",
]
