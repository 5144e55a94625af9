"""Tools registry for managing AI assistant tools."""

from typing import Any

from app.clients.search import PerplexitySearchClient
from app.services.todos import TodoStore
from app.tools.base import ToolDefinition
from app.tools.calculator import create_calculator_tool
from app.tools.internet_search import create_internet_search_tool
from app.tools.todo_actions import create_add_todo_tool, create_check_done_tool, create_delete_todo_tool


class ToolsRegistry:
    """Registry for managing AI assistant tools."""

    def __init__(self, store: TodoStore, search_client: PerplexitySearchClient | None = None):
        """Initialize tools registry with service dependencies.

        Args:
            store: Todo store the todo tools act on
            search_client: Search provider; internet_search is only offered when given
        """
        self.store = store
        self.search_client = search_client
        self._tools: dict[str, ToolDefinition] = {}
        self._register_default_tools()

    def _register_default_tools(self) -> None:
        """Register the default set of tools for todo management."""
        tools = [
            create_add_todo_tool(self.store),
            create_delete_todo_tool(self.store),
            create_check_done_tool(self.store),
            create_calculator_tool(),
        ]
        if self.search_client is not None:
            tools.append(create_internet_search_tool(self.search_client))

        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> ToolDefinition | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """Tool definitions in the format advertised to the model."""
        return [tool.to_openai_format() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools
