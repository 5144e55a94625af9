"""Main FastAPI application."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import __version__
from app.api.endpoints import router
from app.clients.openrouter import ChatCompletionClient, OpenRouterClient
from app.clients.search import PerplexitySearchClient
from app.services.assistant import AssistantConfig
from app.services.conversation import ConversationService
from app.services.todos import SQLiteTodoStore, TodoStore
from app.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    store: TodoStore | None = None,
    client: ChatCompletionClient | None = None,
    search_client: PerplexitySearchClient | None = None,
    assistant_config: AssistantConfig | None = None,
) -> FastAPI:
    """Build the application.

    Collaborators passed in are used as-is. Anything left out is built from
    the environment when the application starts up.
    """

    def wire(app: FastAPI, store: TodoStore, client: ChatCompletionClient) -> None:
        app.state.store = store
        app.state.conversation_service = ConversationService(store, client, search_client, assistant_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not hasattr(app.state, "conversation_service"):
            setup_logging()
            wire(app, store or SQLiteTodoStore.from_env(), client or OpenRouterClient())
            logger.info("Todo assistant started")
        yield

    app = FastAPI(
        title="TodoMate",
        description="A conversational assistant that manages a todo list through LLM tool calls.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Chat", "description": "Talk to the assistant; it edits the todo list through tools."},
            {"name": "Todos", "description": "Direct access to the todo list."},
            {"name": "Health", "description": "Service health monitoring and status checks."},
        ],
    )

    if store is not None and client is not None:
        wire(app, store, client)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app(search_client=PerplexitySearchClient())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3001")), log_level="info")
