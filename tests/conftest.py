"""Shared fixtures for the todo assistant test suite."""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from app.clients.openrouter import MessageTooLongError
from app.models.llm import FunctionCall, LLMResponse, ToolCall
from app.services.todos import SQLiteTodoStore
from app.tools.dispatcher import ToolDispatcher
from app.tools.registry import ToolsRegistry


def tool_call(name: str, arguments: dict[str, Any] | str, call_id: str = "call_1") -> ToolCall:
    """Build a tool call; dict arguments are JSON-encoded the way the API sends them."""
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return ToolCall(id=call_id, function=FunctionCall(name=name, arguments=raw))


def tool_response(*calls: ToolCall, content: str | None = None) -> LLMResponse:
    return LLMResponse(content=content, tool_calls=list(calls), finish_reason="tool_calls")


def text_response(content: str | None) -> LLMResponse:
    return LLMResponse(content=content, finish_reason="stop")


@dataclass
class RecordedCall:
    messages: list[Any]
    tools: list[dict[str, Any]] | None
    tool_choice: str


class ScriptedChatClient:
    """Chat client that replays canned responses and records every request.

    Items in `script` are returned in order; an exception instance is raised
    instead. Once the script runs out `fallback` is called, if given.
    """

    def __init__(
        self,
        script: list[LLMResponse | Exception] | None = None,
        fallback: Callable[[int], LLMResponse] | None = None,
        max_message_chars: int = 4000,
    ):
        self.script = list(script or [])
        self.fallback = fallback
        self.max_message_chars = max_message_chars
        self.calls: list[RecordedCall] = []

    async def create_completion(self, messages, tools=None, tool_choice="auto") -> LLMResponse:
        self.calls.append(RecordedCall(messages=list(messages), tools=tools, tool_choice=tool_choice))
        if self.script:
            item = self.script.pop(0)
        elif self.fallback is not None:
            item = self.fallback(len(self.calls))
        else:
            raise AssertionError("ScriptedChatClient ran out of responses")

        if isinstance(item, Exception):
            raise item
        return item

    def validate_message_tokens(self, message: str) -> None:
        if len(message) > self.max_message_chars:
            raise MessageTooLongError("Message exceeds token limit")


@pytest.fixture
def store():
    """Fresh in-memory todo store."""
    todo_store = SQLiteTodoStore(":memory:")
    yield todo_store
    todo_store.close()


@pytest.fixture
def registry(store):
    return ToolsRegistry(store)


@pytest.fixture
def dispatcher(registry):
    return ToolDispatcher(registry)
