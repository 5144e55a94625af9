"""Public todo views."""

from pydantic import BaseModel

from app.services.todos import TodoRecord


class TodoView(BaseModel):
    """Todo as shown to the model and to API clients."""

    id: int
    title: str
    description: str | None = None
    due_date: str | None = None
    priority: int
    done: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: TodoRecord) -> "TodoView":
        """Build the view, turning the stored 0/1 done flag into a boolean."""
        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            due_date=record.due_date,
            priority=record.priority,
            done=record.done == 1,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
