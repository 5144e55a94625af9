"""Perplexity (Sonar) web search client."""

import os
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from app.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.perplexity.ai"
DEFAULT_MODEL = "sonar-pro"


@dataclass
class SearchConfig:
    """Configuration for the search provider."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """Read PERPLEXITY_* (or SONAR_API_KEY) from the environment."""
        return cls(
            api_key=os.getenv("PERPLEXITY_API_KEY") or os.getenv("SONAR_API_KEY"),
            base_url=os.getenv("PERPLEXITY_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv("PERPLEXITY_MODEL", DEFAULT_MODEL),
        )


class SearchMessage(BaseModel):
    content: str | None = None


class SearchChoice(BaseModel):
    message: SearchMessage | None = None


class SearchResponse(BaseModel):
    """The parts of a Perplexity chat-completions body the tool uses."""

    choices: list[SearchChoice] = []
    citations: list[str] | None = None

    def answer(self) -> str:
        if not self.choices or self.choices[0].message is None:
            return ""
        return self.choices[0].message.content or ""


@dataclass
class SearchOutcome:
    """Either an answer (with optional citations) or an error string."""

    answer: str | None = None
    citations: list[str] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PerplexitySearchClient:
    """Runs one chat-completions POST against Perplexity per query.

    Failures never raise; they come back as ``SearchOutcome.error``.
    """

    def __init__(self, config: SearchConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config or SearchConfig.from_env()
        self._transport = transport

    async def search(self, query: str, model: str | None = None) -> SearchOutcome:
        """Search the web for `query`."""
        if not self.config.api_key:
            return SearchOutcome(error="Missing PERPLEXITY_API_KEY (or SONAR_API_KEY) in environment")

        payload = {
            "model": model or self.config.model,
            "messages": [{"role": "user", "content": query}],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "Accept": "application/json",
        }

        logger.debug(f"Searching Perplexity for: {query[:80]}")
        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url, timeout=self.config.timeout, transport=self._transport
            ) as client:
                response = await client.post("/chat/completions", json=payload, headers=headers)

                if response.is_error:
                    return SearchOutcome(error=f"Perplexity request failed ({response.status_code}): {response.text}")

                body = SearchResponse.model_validate(response.json())
        except ValidationError as e:
            logger.warning(f"Unexpected Perplexity response: {e}")
            return SearchOutcome(error=f"Unexpected Perplexity response: {e.errors()[0]['msg']}")
        except Exception as e:
            logger.warning(f"Perplexity search failed: {e}")
            return SearchOutcome(error=str(e) or "unknown error")

        return SearchOutcome(answer=body.answer(), citations=body.citations)
