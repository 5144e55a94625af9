"""Chat-completion message models (OpenAI-compatible wire shape)."""

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ToolChoice = Literal["auto", "none"]


class FunctionCall(BaseModel):
    """Function name and raw JSON argument text of a tool call."""

    model_config = ConfigDict(extra="ignore")

    name: str
    arguments: str = ""

    @field_validator("arguments", mode="before")
    @classmethod
    def null_arguments_as_empty(cls, v: Any) -> Any:
        """Some routed providers send null for argument-less calls."""
        return "" if v is None else v


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str = "function"
    function: FunctionCall


class SystemMessage(BaseModel):
    """Instructions prepended to every conversation."""

    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    """Free text from the user."""

    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    """Model output: optional text and zero or more tool calls."""

    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None


class ToolMessage(BaseModel):
    """Serialized result answering exactly one tool call."""

    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str


ChatMessage = Annotated[
    SystemMessage | UserMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]


def to_wire(message: BaseModel) -> dict[str, Any]:
    """Dump a message in the shape the chat-completion API accepts."""
    data = message.model_dump(exclude_none=True)
    if data.get("role") == "assistant":
        # The API expects an explicit null content alongside tool calls
        data.setdefault("content", None)
    return data


@dataclass
class LLMUsage:
    """Token usage reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "LLMUsage | None") -> None:
        """Accumulate another call's usage into this one."""
        if other is None:
            return
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens


@dataclass
class LLMResponse:
    """Provider-agnostic result of one chat-completion call."""

    content: str | None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None
    usage: LLMUsage | None = None
    model: str | None = None

    def to_message(self) -> AssistantMessage:
        """The assistant message to append to history."""
        return AssistantMessage(content=self.content, tool_calls=self.tool_calls or None)
