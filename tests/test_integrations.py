"""Tests for framework integrations."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from termops import TerminalToolkit
from termops.integrations import langchain as langchain_integration
from termops.integrations import pydantic_ai as pydantic_ai_integration


# --- LangChain Tests ---

async def test_langchain_missing_dependency(toolkit: TerminalToolkit, monkeypatch: pytest.MonkeyPatch) -> None:
    """Without langchain-core the factory should explain how to install it."""
    monkeypatch.setattr(langchain_integration, "HAS_LANGCHAIN", False)
    with pytest.raises(ImportError, match="termops\\[langchain\\]"):
        langchain_integration.create_langchain_tools(toolkit)


async def test_langchain_tool(toolkit: TerminalToolkit) -> None:
    """Test the LangChain terminal tool."""
    pytest.importorskip("langchain_core")

    tools = langchain_integration.create_langchain_tools(toolkit)
    tool = tools["terminal"]

    assert tool.name == "terminal"
    assert "## Terminal Operations" in tool.description

    result = await tool.ainvoke({"command": "echo hello"})
    assert "✅ Exit Code: 0" in result
    assert "hello" in result

    # Policy still applies
    result = await tool.ainvoke({"command": "rm -rf /"})
    assert "❌" in result
    assert "Dangerous command detected" in result


# --- PydanticAI Tests ---

async def test_pydantic_ai_missing_dependency(
    toolkit: TerminalToolkit, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(pydantic_ai_integration, "HAS_PYDANTIC_AI", False)
    with pytest.raises(ImportError, match="pydantic-ai"):
        pydantic_ai_integration.create_pydantic_ai_tool(toolkit)


async def test_pydantic_ai_tool(toolkit: TerminalToolkit) -> None:
    """Test PydanticAI tool creation."""
    pytest.importorskip("pydantic_ai")

    # The tool ignores its RunContext, so a stand-in is enough
    @dataclass
    class MockContext:
        deps: dict

    tool = pydantic_ai_integration.create_pydantic_ai_tool(toolkit)
    assert tool.name == "terminal"

    result = await tool.function(MockContext(deps={}), "echo pydantic")
    assert "pydantic" in result
    assert "✅" in result
