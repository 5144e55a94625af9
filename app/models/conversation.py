"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.todo import TodoView


class ChatHistoryMessage(BaseModel):
    """One prior turn as sent by the client."""

    role: Literal["user", "assistant"]
    content: str | None


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    messages: list[ChatHistoryMessage]


class ChatResponse(BaseModel):
    """Response model for the chat endpoint."""

    assistant: str
    todos: list[TodoView]


class CreateTodoRequest(BaseModel):
    """Request model for creating a todo directly."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    due_date: str | None = None
    priority: Literal[0, 1] = 0


class CheckTodoRequest(BaseModel):
    """Request model for toggling a todo's done flag."""

    done: bool


class TodoResponse(BaseModel):
    todo: TodoView


class TodoListResponse(BaseModel):
    todos: list[TodoView]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
