"""LangChain integration for termops."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from termops.render import format_results

if TYPE_CHECKING:
    from termops._types import TerminalToolkit

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tools(toolkit: TerminalToolkit) -> dict[str, Any]:
    """
    Create LangChain tools from a TerminalToolkit.

    Args:
        toolkit: The terminal toolkit to wrap.

    Returns:
        Dictionary with a ``terminal`` StructuredTool. It runs a shell
        command through the toolkit's policy and returns the rendered result.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> toolkit = await create_terminal()
        >>> tools = create_langchain_tools(toolkit)
        >>> agent = create_react_agent(llm, list(tools.values()))
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install termops[langchain]"
        )

    async def terminal(command: str, working_dir: str | None = None) -> str:
        """Execute a shell command on the host and return its rendered result."""
        result = await toolkit.run(command, working_dir=working_dir)
        return format_results([result])

    terminal_tool = _StructuredTool.from_function(
        coroutine=terminal,
        name="terminal",
        description=f"Execute shell commands on the host.\n{toolkit.tool_prompt}",
    )

    return {"terminal": terminal_tool}
