"""Validate and run tool calls, producing uniform results."""

from typing import Any

from pydantic import ValidationError

from app.tools.base import ToolExecutionResult, ToolFailure, ToolResolutionError, ToolSuccess
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)


def format_validation_error(error: ValidationError) -> str:
    """Collapse pydantic errors into one line, e.g. ``title: String should have at least 1 character``."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        message = detail["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid arguments"


class ToolDispatcher:
    """Runs one tool call against the registry.

    Never raises for bad input: unknown tools, validation failures and
    unresolvable targets all come back as ``ToolFailure``.
    """

    def __init__(self, registry: ToolsRegistry):
        self.registry = registry

    async def execute(self, name: str, raw_arguments: Any) -> ToolExecutionResult:
        """Validate `raw_arguments` for tool `name` and run it."""
        tool = self.registry.get_tool(name)
        if tool is None:
            logger.error(f"Unknown tool requested: {name}")
            return ToolFailure(message=f"Unknown tool: {name}")

        try:
            params = tool.parse_input(raw_arguments)
        except ValidationError as e:
            cause = format_validation_error(e)
            logger.warning(f"Tool {name} rejected arguments: {cause}")
            return ToolFailure(message=f"Validation error: {cause}")

        try:
            data = await tool.handler(params)
        except ToolResolutionError as e:
            logger.info(f"Tool {name} failed: {e}")
            return ToolFailure(message=str(e))

        logger.debug(f"Tool {name} succeeded")
        return ToolSuccess(data=data)
