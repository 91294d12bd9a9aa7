"""
PydanticAI integration for termops.

Provides a helper to expose a TerminalToolkit as a PydanticAI tool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from termops.render import format_results

if TYPE_CHECKING:
    from termops._types import TerminalToolkit

HAS_PYDANTIC_AI = False

try:
    from pydantic_ai import RunContext, Tool

    HAS_PYDANTIC_AI = True
except ImportError:
    pass


def create_pydantic_ai_tool(toolkit: TerminalToolkit) -> Tool[Any]:
    """
    Create a PydanticAI tool that runs shell commands through the toolkit.

    The tool applies the toolkit's security policy and returns the rendered
    result, so failures reach the model as text instead of exceptions.

    Raises:
        ImportError: If pydantic-ai is not installed.

    Example:
        >>> from pydantic_ai import Agent
        >>> toolkit = await create_terminal()
        >>> agent = Agent("openai:gpt-4o", tools=[create_pydantic_ai_tool(toolkit)])
    """
    if not HAS_PYDANTIC_AI:
        raise ImportError(
            "PydanticAI integration requires 'pydantic-ai'. "
            "Install with `pip install termops[pydantic-ai]`"
        )

    async def terminal(ctx: RunContext[Any], command: str) -> str:
        """
        Execute a shell command on the host.
        Dangerous commands are refused by the security policy.
        """
        result = await toolkit.run(command)
        return format_results([result])

    return Tool(terminal, takes_ctx=True, name="terminal")
