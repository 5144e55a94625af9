"""API endpoints for the todo assistant service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app import __version__
from app.clients.openrouter import MessageTooLongError
from app.models.conversation import (
    ChatRequest,
    ChatResponse,
    CheckTodoRequest,
    CreateTodoRequest,
    HealthResponse,
    TodoListResponse,
    TodoResponse,
)
from app.models.todo import TodoView
from app.services.conversation import ConversationService
from app.services.todos import TodoStore
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_store(request: Request) -> TodoStore:
    """The process-wide todo store."""
    return request.app.state.store


def get_conversation_service(request: Request) -> ConversationService:
    """The conversation service wired at startup."""
    return request.app.state.conversation_service


@router.post("/api/chat", response_model=ChatResponse, tags=["Chat"])
async def handle_chat(
    request: ChatRequest,
    conversation_service: ConversationService = Depends(get_conversation_service),
) -> ChatResponse:
    """Run the assistant over the posted history and return its reply with the current todos."""
    try:
        result = await conversation_service.process_chat(request.messages)
    except MessageTooLongError as e:
        logger.warning(f"Chat message validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Failed to process chat request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process chat request") from e

    logger.info(f"Assistant replied: {result.assistant[:50]}...")
    return ChatResponse(assistant=result.assistant, todos=result.todos)


@router.get("/api/todos", response_model=TodoListResponse, tags=["Todos"])
async def list_todos(store: TodoStore = Depends(get_store)) -> TodoListResponse:
    """List all todos, newest first."""
    return TodoListResponse(todos=[TodoView.from_record(record) for record in store.list()])


@router.post("/api/todos", response_model=TodoResponse, status_code=status.HTTP_201_CREATED, tags=["Todos"])
async def create_todo(request: CreateTodoRequest, store: TodoStore = Depends(get_store)) -> TodoResponse:
    """Create a todo without going through the assistant."""
    record = store.create(
        title=request.title,
        description=request.description,
        due_date=request.due_date,
        priority=request.priority,
    )
    return TodoResponse(todo=TodoView.from_record(record))


@router.patch("/api/todos/{todo_id}/check", response_model=TodoResponse, tags=["Todos"])
async def check_todo(todo_id: int, request: CheckTodoRequest, store: TodoStore = Depends(get_store)) -> TodoResponse:
    """Set a todo's done flag."""
    if todo_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid id parameter")

    updated = store.mark_done_by_id(todo_id, request.done)
    if updated is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return TodoResponse(todo=TodoView.from_record(updated))


@router.delete("/api/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Todos"])
async def delete_todo(todo_id: int, store: TodoStore = Depends(get_store)) -> Response:
    """Delete a todo."""
    if todo_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid id parameter")

    if not store.delete_by_id(todo_id):
        raise HTTPException(status_code=404, detail="Todo not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
