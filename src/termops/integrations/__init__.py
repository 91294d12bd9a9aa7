"""Framework integrations for termops."""

from termops.integrations.langchain import create_langchain_tools
from termops.integrations.pydantic_ai import create_pydantic_ai_tool

__all__ = ["create_langchain_tools", "create_pydantic_ai_tool"]
