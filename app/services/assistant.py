"""Tool-calling assistant loop."""

import json
from dataclasses import dataclass, field
from typing import Any

from app.clients.openrouter import ChatCompletionClient
from app.models.llm import ChatMessage, LLMResponse, LLMUsage, ToolCall, ToolChoice, ToolMessage
from app.tools.base import ToolExecutionResult, ToolFailure
from app.tools.dispatcher import ToolDispatcher
from app.utils.logging import get_logger
from app.utils.retry import RetryPolicy, run_with_retry

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 6
INVALID_JSON_MESSAGE = "Invalid JSON arguments supplied to tool."


class AssistantLoopError(RuntimeError):
    """The model kept calling tools past the iteration budget."""


@dataclass
class AssistantConfig:
    """Loop settings."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass
class AssistantRunResult:
    """Final answer plus the full history that produced it."""

    content: str
    messages: list[ChatMessage]
    iterations: int
    usage: LLMUsage


class Assistant:
    """Drives a conversation with the model until it stops calling tools.

    Each iteration sends the whole history and the tool schemas. After an
    iteration in which every tool call succeeded the next request is sent
    with ``tool_choice="none"`` so the model has to answer in prose; after any
    failure it stays ``"auto"`` so the model can retry or ask the user.
    """

    def __init__(
        self,
        client: ChatCompletionClient,
        dispatcher: ToolDispatcher,
        config: AssistantConfig | None = None,
    ):
        """Initialize the assistant.

        Args:
            client: Chat-completion client
            dispatcher: Dispatcher bound to this request's store
            config: Loop settings
        """
        self.client = client
        self.dispatcher = dispatcher
        self.config = config or AssistantConfig()

    async def run(self, initial_messages: list[ChatMessage]) -> AssistantRunResult:
        """Run the loop over a history that already starts with the system prompt.

        Raises:
            AssistantLoopError: If no final answer arrives within max_iterations
            Exception: Whatever the client raised once retries are exhausted
        """
        messages: list[ChatMessage] = list(initial_messages)
        tools = self.dispatcher.registry.get_tool_schemas()
        max_iterations = self.config.max_iterations

        logger.info(
            f"Starting assistant loop with {len(messages)} messages, {len(tools)} tools, "
            f"max_iterations: {max_iterations}"
        )

        usage = LLMUsage()
        tool_choice: ToolChoice = "auto"
        iteration = 0

        while iteration < max_iterations:
            iteration += 1
            logger.debug(f"Assistant iteration {iteration}/{max_iterations}, tool_choice={tool_choice}")

            response = await self._request(messages, tools, tool_choice)
            usage.add(response.usage)

            # Recorded before any tool runs so history matches what the model emitted
            messages.append(response.to_message())

            if not response.tool_calls:
                content = response.content or ""
                logger.info(f"Assistant responded without tool calls in iteration {iteration}: {content[:120]!r}")
                return AssistantRunResult(content=content, messages=messages, iterations=iteration, usage=usage)

            logger.info(f"Model requested {len(response.tool_calls)} tool calls")

            results: list[ToolExecutionResult] = []
            for call in response.tool_calls:
                result = await self._execute_tool_call(call)
                results.append(result)
                messages.append(ToolMessage(tool_call_id=call.id, content=json.dumps(result.model_dump())))

            tool_choice = "none" if all(result.ok for result in results) else "auto"

        logger.warning(f"Assistant exceeded maximum tool iterations ({max_iterations})")
        raise AssistantLoopError("Assistant exceeded maximum tool iterations")

    async def _request(
        self, messages: list[ChatMessage], tools: list[dict[str, Any]], tool_choice: ToolChoice
    ) -> LLMResponse:
        snapshot = list(messages)
        return await run_with_retry(
            lambda: self.client.create_completion(snapshot, tools=tools, tool_choice=tool_choice),
            self.config.retry,
        )

    async def _execute_tool_call(self, call: ToolCall) -> ToolExecutionResult:
        name = call.function.name
        raw = call.function.arguments
        try:
            arguments = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse tool arguments for {name}: {raw!r}")
            return ToolFailure(message=INVALID_JSON_MESSAGE)

        logger.debug(f"Executing tool: {name} with input: {arguments}")
        return await self.dispatcher.execute(name, arguments)
