"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, SerializeAsAny

ToolHandler = Callable[[BaseModel], Awaitable[BaseModel]]


class ToolResolutionError(Exception):
    """A tool could not find or act on its target; the message is shown to the model."""


class ToolSuccess(BaseModel):
    """Successful tool dispatch."""

    ok: Literal[True] = True
    data: SerializeAsAny[BaseModel]


class ToolFailure(BaseModel):
    """Failed tool dispatch with a human-readable reason."""

    ok: Literal[False] = False
    message: str


ToolExecutionResult = ToolSuccess | ToolFailure


@dataclass
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get the strict JSON schema for this tool's input."""
        return strict_json_schema(self.input_schema_class)

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to the chat-completions tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "strict": True,
                "parameters": self.get_json_schema(),
            },
        }

    def parse_input(self, raw_input: Any) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)


def strict_json_schema(model_class: type[BaseModel]) -> dict[str, Any]:
    """Render a pydantic model as a strict function-calling schema.

    Nested models are inlined, every object forbids extra properties and lists
    all of its properties as required (optional values are expressed as
    nullable types instead).
    """
    schema = model_class.model_json_schema()
    definitions = schema.pop("$defs", {})
    schema.pop("description", None)
    return _strictify(schema, definitions)


def _strictify(node: Any, definitions: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_strictify(item, definitions) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        resolved = _strictify(definitions[node["$ref"].rsplit("/", 1)[-1]], definitions)
        siblings = {key: value for key, value in node.items() if key != "$ref"}
        return {**resolved, **_strictify(siblings, definitions)}

    if len(node.get("allOf", [])) == 1:
        inner = _strictify(node["allOf"][0], definitions)
        siblings = {key: value for key, value in node.items() if key != "allOf"}
        return {**inner, **_strictify(siblings, definitions)}

    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in ("title", "default"):
            continue
        if key == "properties":
            result[key] = {name: _strictify(prop, definitions) for name, prop in value.items()}
        else:
            result[key] = _strictify(value, definitions)

    if result.get("type") == "object" and "properties" in result:
        result["additionalProperties"] = False
        result["required"] = list(result["properties"])

    return result
