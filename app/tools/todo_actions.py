"""Todo creation, deletion and completion tools."""

import re
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.todo import TodoView
from app.services.todos import TodoStore
from app.tools.base import ToolDefinition, ToolResolutionError
from app.utils.logging import get_logger

logger = get_logger(__name__)

ISO_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)

NOT_FOUND_BY_ID = "No todo exists with that id."
NOT_FOUND_BY_TITLE = "No todo exists with that exact title."
AMBIGUOUS_TITLE = "Multiple todos share that title. Ask the user for the id to disambiguate."
MISSING_ID = "Missing identifier. Provide a numeric id when using the id selector."
MISSING_TITLE = "Missing identifier. Provide an exact title when using the title selector."


class AddTodoInput(BaseModel):
    """Input schema for add_todo."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200, description="Short title of the todo")
    description: str | None = Field(
        default=None,
        min_length=1,
        description="Optional detail about the todo; provide null if not supplied.",
    )
    due_date: str | None = Field(
        default=None,
        description="ISO 8601 date or datetime (e.g., 2025-09-17 or 2025-09-17T09:00:00Z)",
    )
    priority: Literal[0, 1] = Field(default=0, description="0 for normal, 1 for high priority")

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: str | None) -> str | None:
        """Accept YYYY-MM-DD or anything datetime.fromisoformat understands."""
        if v is None or ISO_DATE_ONLY.fullmatch(v):
            return v
        try:
            datetime.fromisoformat(v)
        except ValueError as e:
            raise ValueError("Due date must be ISO 8601 date (YYYY-MM-DD) or datetime.") from e
        return v


class Selector(BaseModel):
    """Reference to exactly one todo, by id or by exact title. The unused field must be null."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["id", "title"]
    id: Annotated[int, Field(gt=0, strict=True)] | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)

    @model_validator(mode="after")
    def check_identifier(self) -> "Selector":
        """The field named by kind must be present."""
        if self.kind == "id" and self.id is None:
            raise ValueError('Provide the numeric id when selector.kind is "id".')
        if self.kind == "title" and (not self.title or not self.title.strip()):
            raise ValueError('Provide the exact title when selector.kind is "title".')
        return self


class DeleteTodoInput(BaseModel):
    """Input schema for delete_todo."""

    model_config = ConfigDict(extra="forbid")

    selector: Selector


class CheckDoneInput(BaseModel):
    """Input schema for check_done."""

    model_config = ConfigDict(extra="forbid")

    selector: Selector
    done: bool = Field(default=True, description="true to mark done, false to reopen")


class AddTodoResult(BaseModel):
    action: Literal["add"] = "add"
    todo: TodoView


class DeleteTodoResult(BaseModel):
    action: Literal["delete"] = "delete"
    id: int


class CheckDoneResult(BaseModel):
    action: Literal["check"] = "check"
    todo: TodoView


def resolve_selector(store: TodoStore, selector: Selector) -> int:
    """Turn a selector into a concrete todo id.

    Title lookups are exact and case-sensitive. When several todos share the
    title nothing is picked; the caller has to ask for an id.

    Raises:
        ToolResolutionError: If the identifier is missing, unknown or ambiguous
    """
    if selector.kind == "id":
        if selector.id is None:
            raise ToolResolutionError(MISSING_ID)
        return selector.id

    title = (selector.title or "").strip()
    if not title:
        raise ToolResolutionError(MISSING_TITLE)

    candidates = store.find_by_exact_title(title)
    if not candidates:
        raise ToolResolutionError(NOT_FOUND_BY_TITLE)
    if len(candidates) > 1:
        logger.info(f"Selector title {title!r} matches {len(candidates)} todos")
        raise ToolResolutionError(AMBIGUOUS_TITLE)

    return candidates[0].id


def create_add_todo_tool(store: TodoStore) -> ToolDefinition:
    async def add_todo_handler(args: AddTodoInput) -> AddTodoResult:  # noqa: RUF029
        record = store.create(
            title=args.title,
            description=args.description,
            due_date=args.due_date,
            priority=args.priority,
        )
        logger.info(f"Created todo {record.id}: {record.title!r}")
        return AddTodoResult(todo=TodoView.from_record(record))

    return ToolDefinition(
        name="add_todo",
        description="Create a new todo item.",
        input_schema_class=AddTodoInput,
        handler=add_todo_handler,
    )


def create_delete_todo_tool(store: TodoStore) -> ToolDefinition:
    async def delete_todo_handler(args: DeleteTodoInput) -> DeleteTodoResult:  # noqa: RUF029
        todo_id = resolve_selector(store, args.selector)
        if not store.delete_by_id(todo_id):
            raise ToolResolutionError(NOT_FOUND_BY_ID)

        logger.info(f"Deleted todo {todo_id}")
        return DeleteTodoResult(id=todo_id)

    return ToolDefinition(
        name="delete_todo",
        description="Delete a todo by id or by exact title.",
        input_schema_class=DeleteTodoInput,
        handler=delete_todo_handler,
    )


def create_check_done_tool(store: TodoStore) -> ToolDefinition:
    async def check_done_handler(args: CheckDoneInput) -> CheckDoneResult:  # noqa: RUF029
        todo_id = resolve_selector(store, args.selector)
        updated = store.mark_done_by_id(todo_id, args.done)
        if updated is None:
            raise ToolResolutionError(NOT_FOUND_BY_ID)

        logger.info(f"Marked todo {todo_id} done={args.done}")
        return CheckDoneResult(todo=TodoView.from_record(updated))

    return ToolDefinition(
        name="check_done",
        description="Mark a todo as done by id or exact title.",
        input_schema_class=CheckDoneInput,
        handler=check_done_handler,
    )
