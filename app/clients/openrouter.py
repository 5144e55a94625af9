"""OpenRouter chat-completion client with rate limiting and token accounting."""

import asyncio
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import tiktoken
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from app.models.llm import LLMResponse, LLMUsage, ToolCall, ToolChoice, to_wire
from app.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o"


@dataclass
class OpenRouterConfig:
    """Configuration for the OpenRouter client."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.2
    max_tokens: int | None = None
    http_referer: str | None = None
    x_title: str | None = None
    timeout: float = 60.0

    # Client-side throttling
    requests_per_minute: int = 60
    tokens_per_minute: int = 200_000

    # Inbound user message validation
    max_message_tokens: int = 2000

    extra_headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "OpenRouterConfig":
        """Read OPENROUTER_* and ASSISTANT_TEMPERATURE from the environment."""
        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY"),
            base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv("OPENROUTER_DEFAULT_MODEL", DEFAULT_MODEL),
            temperature=float(os.getenv("ASSISTANT_TEMPERATURE", "0.2")),
            http_referer=os.getenv("OPENROUTER_HTTP_REFERER"),
            x_title=os.getenv("OPENROUTER_X_TITLE"),
        )

    def default_headers(self) -> dict[str, str]:
        """Optional OpenRouter attribution headers."""
        headers = dict(self.extra_headers)
        if self.http_referer:
            headers["HTTP-Referer"] = self.http_referer
        if self.x_title:
            headers["X-Title"] = self.x_title
        return headers


class MessageTooLongError(ValueError):
    """An inbound user message is over the token budget."""


class ChatCompletionClient(Protocol):
    """Anything that can run one chat-completion request."""

    async def create_completion(
        self,
        messages: Sequence[BaseModel],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = "auto",
    ) -> LLMResponse:
        """Send the history and return the first choice's message."""
        ...

    def validate_message_tokens(self, message: str) -> None:
        """Raise MessageTooLongError if an inbound message is too large to send."""
        ...


class ChatRateLimiter:
    """Request and token rate limiter backed by the limits library."""

    def __init__(self, requests_per_minute: int = 60, tokens_per_minute: int = 200_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum estimated prompt tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "openrouter") -> None:
        """Wait until the request fits within both limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        await self._wait_for(self.request_limit, identifier, cost=1, label="Request")
        await self._wait_for(self.token_limit, f"{identifier}_tokens", cost=max(1, estimated_tokens), label="Token")

    async def _wait_for(self, limit, identifier: str, cost: int, label: str) -> None:
        if self.limiter.hit(limit, identifier, cost=cost):
            return

        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


class OpenRouterClient:
    """Low-level OpenRouter chat-completion client.

    Retries are left to the caller; the underlying SDK is built with
    ``max_retries=0``.
    """

    tokenizer: tiktoken.Encoding | None = None

    def __init__(self, config: OpenRouterConfig | None = None, client: AsyncOpenAI | None = None):
        """Initialize the client.

        Args:
            config: Client configuration (defaults to the environment)
            client: Pre-built SDK client, mainly for tests

        Raises:
            ValueError: If no API key is configured and no client is given
        """
        self.config = config or OpenRouterConfig.from_env()

        if client is None:
            if not self.config.api_key:
                raise ValueError("OPENROUTER_API_KEY environment variable is required")
            client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                default_headers=self.config.default_headers() or None,
                timeout=self.config.timeout,
                max_retries=0,
            )
            logger.info(f"OpenRouter client initialized with base URL {self.config.base_url}")

        self.client = client
        self.rate_limiter = ChatRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

        try:
            # Close enough for most routed models
            self.tokenizer = tiktoken.get_encoding("o200k_base")
        except Exception:
            self.tokenizer = None

    async def create_completion(
        self,
        messages: Sequence[BaseModel],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = "auto",
        **kwargs,
    ) -> LLMResponse:
        """Create a chat completion.

        Args:
            messages: Full conversation history
            tools: Tool schemas in OpenAI function format
            tool_choice: "auto" to let the model decide, "none" to forbid tool calls
            **kwargs: Overrides for model, temperature, max_tokens

        Returns:
            The first choice as an LLMResponse (empty if the provider returned no choices)
        """
        message_dicts = [to_wire(message) for message in messages]

        estimated_tokens = self._estimate_tokens(message_dicts)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "messages": message_dicts,
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        max_tokens = kwargs.get("max_tokens", self.config.max_tokens)
        if max_tokens:
            request_params["max_tokens"] = max_tokens
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = tool_choice

        logger.debug(
            f"Calling {request_params['model']} with {len(message_dicts)} messages, "
            f"{len(tools) if tools else 0} tools, tool_choice={tool_choice}"
        )
        response = await self.client.chat.completions.create(**request_params)

        return self._convert_response(response)

    def _convert_response(self, response: Any) -> LLMResponse:
        """Convert an SDK completion into an LLMResponse."""
        usage = None
        raw_usage = getattr(response, "usage", None)
        if raw_usage is not None:
            usage = LLMUsage(
                prompt_tokens=raw_usage.prompt_tokens or 0,
                completion_tokens=raw_usage.completion_tokens or 0,
                total_tokens=raw_usage.total_tokens or 0,
            )

        model = getattr(response, "model", None)
        choices = getattr(response, "choices", None) or []
        if not choices or getattr(choices[0], "message", None) is None:
            logger.warning("Completion response carried no choices")
            return LLMResponse(content=None, usage=usage, model=model)

        choice = choices[0]
        message = choice.message

        tool_calls: list[ToolCall] = []
        for raw_call in message.tool_calls or []:
            call_dict = raw_call if isinstance(raw_call, dict) else raw_call.model_dump()
            try:
                tool_calls.append(ToolCall.model_validate(call_dict))
            except ValidationError:
                # History must record every call the model emitted
                logger.error(f"Failed to convert tool call: {call_dict}")
                raise

        logger.debug(f"Response received - finish reason: {choice.finish_reason}, tool calls: {len(tool_calls)}")

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason,
            usage=usage,
            model=model,
        )

    def _estimate_tokens(self, message_dicts: list[dict[str, Any]]) -> int:
        """Estimate prompt tokens for rate limiting."""
        text_content = ""
        for message in message_dicts:
            content = message.get("content")
            if isinstance(content, str):
                text_content += content
            for call in message.get("tool_calls", []):
                text_content += call["function"]["name"] + call["function"]["arguments"]

        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Args:
            message: Message content

        Raises:
            MessageTooLongError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise MessageTooLongError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )
