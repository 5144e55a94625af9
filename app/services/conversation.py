"""Conversation service: turns an HTTP chat history into an assistant run."""

from dataclasses import dataclass
from datetime import datetime

from app.clients.openrouter import ChatCompletionClient
from app.clients.search import PerplexitySearchClient
from app.models.conversation import ChatHistoryMessage
from app.models.llm import AssistantMessage, ChatMessage, SystemMessage, UserMessage
from app.models.todo import TodoView
from app.services.assistant import Assistant, AssistantConfig
from app.services.todos import TodoRecord, TodoStore
from app.tools.dispatcher import ToolDispatcher
from app.tools.registry import ToolsRegistry
from app.utils.logging import get_logger

logger = get_logger(__name__)

BASE_SYSTEM_PROMPT = """You are TodoMate, an assistant who manages a personal todo list using the provided tools.
Always call a tool to make any change; never invent data or state.
When a request is ambiguous or the target todo cannot be uniquely identified, ask for clarification before acting.
When calling tools with a selector, set selector.kind to "id" or "title" and set the unused field to null.
Prefer ids when the user provides them."""


def describe_todos(todos: list[TodoRecord]) -> str:
    """One summary line per todo for the system prompt."""
    if not todos:
        return "- No todos exist yet."

    lines = []
    for todo in todos:
        status = "done" if todo.done == 1 else "open"
        priority = "high" if todo.priority == 1 else "normal"
        due = f"due {todo.due_date}" if todo.due_date else "no due date set"
        description = f"Description: {todo.description}" if todo.description else "No description provided"
        lines.append(f'- [{todo.id}] "{todo.title}" • status: {status}; priority: {priority}; {due}. {description}.')
    return "\n".join(lines)


def build_system_prompt(now: datetime, todos: list[TodoRecord]) -> str:
    """System prompt with the current time and a snapshot of the list."""
    now_string = now.strftime("%A, %B %d, %Y at %I:%M:%S %p %Z").strip()
    return (
        f"{BASE_SYSTEM_PROMPT}\n\nCurrent local date & time: {now_string}.\n\n"
        f"Current todos:\n{describe_todos(todos)}"
    )


@dataclass
class ChatResult:
    """Final assistant text and the todo list after the run."""

    assistant: str
    todos: list[TodoView]


class ConversationService:
    """Handles one chat request end to end.

    Every call gets its own message history and its own dispatcher; only the
    store is shared between concurrent requests.
    """

    def __init__(
        self,
        store: TodoStore,
        client: ChatCompletionClient,
        search_client: PerplexitySearchClient | None = None,
        config: AssistantConfig | None = None,
    ):
        self.store = store
        self.client = client
        self.search_client = search_client
        self.config = config or AssistantConfig()

    async def process_chat(self, history: list[ChatHistoryMessage], now: datetime | None = None) -> ChatResult:
        """Run the assistant over the client's history.

        Raises:
            MessageTooLongError: If a message exceeds the token limit
            AssistantLoopError: If the model doesn't converge
        """
        for message in history:
            if message.content:
                self.client.validate_message_tokens(message.content)

        now = now or datetime.now().astimezone()
        system_prompt = build_system_prompt(now, self.store.list())
        messages: list[ChatMessage] = [SystemMessage(content=system_prompt), *self._to_chat_messages(history)]

        logger.info(f"Processing chat request with {len(history)} history messages")

        dispatcher = ToolDispatcher(ToolsRegistry(self.store, self.search_client))
        result = await Assistant(self.client, dispatcher, self.config).run(messages)

        logger.info(
            f"Chat completed in {result.iterations} iterations, "
            f"tokens: {result.usage.prompt_tokens} in / {result.usage.completion_tokens} out"
        )

        todos = [TodoView.from_record(record) for record in self.store.list()]
        return ChatResult(assistant=result.content, todos=todos)

    @staticmethod
    def _to_chat_messages(history: list[ChatHistoryMessage]) -> list[ChatMessage]:
        messages: list[ChatMessage] = []
        for message in history:
            content = message.content or ""
            if message.role == "user":
                messages.append(UserMessage(content=content))
            else:
                messages.append(AssistantMessage(content=content))
        return messages
