"""Web search tool backed by Perplexity."""

from pydantic import BaseModel, ConfigDict, Field

from app.clients.search import PerplexitySearchClient
from app.tools.base import ToolDefinition, ToolResolutionError


class InternetSearchInput(BaseModel):
    """Input schema for internet_search."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(..., min_length=1, description="Natural language query to search on the web.")


class InternetSearchResult(BaseModel):
    answer: str
    citations: list[str] | None = None


def create_internet_search_tool(search_client: PerplexitySearchClient) -> ToolDefinition:
    async def internet_search_handler(args: InternetSearchInput) -> InternetSearchResult:
        outcome = await search_client.search(args.query)
        if not outcome.ok:
            raise ToolResolutionError(outcome.error)
        return InternetSearchResult(answer=outcome.answer or "", citations=outcome.citations)

    return ToolDefinition(
        name="internet_search",
        description=(
            "Perform a web search using Perplexity (Sonar) and return a concise answer with citations. "
            "Use this for up-to-date or external knowledge."
        ),
        input_schema_class=InternetSearchInput,
        handler=internet_search_handler,
    )
