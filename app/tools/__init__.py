"""Tools for the conversational AI assistant."""

from app.tools.dispatcher import ToolDispatcher
from app.tools.registry import ToolsRegistry

__all__ = ["ToolDispatcher", "ToolsRegistry"]
