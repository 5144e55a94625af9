"""Tests for tool dispatch, selector resolution and the individual tools."""

import math

import httpx
import pytest

from app.clients.search import PerplexitySearchClient, SearchConfig
from app.tools.dispatcher import ToolDispatcher
from app.tools.registry import ToolsRegistry
from app.tools.todo_actions import (
    AMBIGUOUS_TITLE,
    MISSING_ID,
    MISSING_TITLE,
    NOT_FOUND_BY_ID,
    NOT_FOUND_BY_TITLE,
    Selector,
    resolve_selector,
)
from app.tools.base import ToolResolutionError


def by_id(todo_id):
    return {"kind": "id", "id": todo_id, "title": None}


def by_title(title):
    return {"kind": "title", "id": None, "title": title}


class TestDispatchEnvelope:
    """Tests for the uniform result contract."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher):
        """Unknown names become a negative result, not an exception."""
        result = await dispatcher.execute("launch_rockets", {})
        assert result.model_dump() == {"ok": False, "message": "Unknown tool: launch_rockets"}

    @pytest.mark.asyncio
    async def test_validation_error_is_converted(self, dispatcher):
        """Bad arguments are reported with a Validation error prefix."""
        result = await dispatcher.execute("add_todo", {"title": ""})

        assert result.ok is False
        assert result.message.startswith("Validation error: ")
        assert "title" in result.message

    @pytest.mark.asyncio
    async def test_non_object_arguments(self, dispatcher):
        """Arguments that aren't an object fail validation."""
        result = await dispatcher.execute("add_todo", ["buy milk"])
        assert result.ok is False
        assert result.message.startswith("Validation error: ")


class TestAddTodo:
    """Tests for add_todo."""

    @pytest.mark.asyncio
    async def test_creates_open_todo(self, dispatcher, store):
        """The new record is open and gets a fresh id."""
        result = await dispatcher.execute(
            "add_todo", {"title": "buy milk", "description": None, "due_date": None, "priority": 0}
        )

        assert result.ok is True
        data = result.model_dump()["data"]
        assert data["action"] == "add"
        assert data["todo"]["title"] == "buy milk"
        assert data["todo"]["done"] is False
        assert store.find_by_id(data["todo"]["id"]) is not None

    @pytest.mark.asyncio
    async def test_ids_are_never_reused(self, dispatcher):
        """Ids keep increasing even after a delete."""
        first = (await dispatcher.execute("add_todo", {"title": "a"})).model_dump()["data"]["todo"]["id"]
        await dispatcher.execute("delete_todo", {"selector": by_id(first)})
        second = (await dispatcher.execute("add_todo", {"title": "b"})).model_dump()["data"]["todo"]["id"]

        assert second > first

    @pytest.mark.asyncio
    async def test_keeps_optional_fields(self, dispatcher):
        result = await dispatcher.execute(
            "add_todo", {"title": "file taxes", "description": "federal", "due_date": "2025-04-15", "priority": 1}
        )
        todo = result.model_dump()["data"]["todo"]

        assert todo["description"] == "federal"
        assert todo["due_date"] == "2025-04-15"
        assert todo["priority"] == 1


class TestDeleteTodo:
    """Tests for delete_todo."""

    @pytest.mark.asyncio
    async def test_delete_by_id(self, dispatcher, store):
        """A deleted todo can no longer be found."""
        todo = store.create(title="buy milk")

        result = await dispatcher.execute("delete_todo", {"selector": by_id(todo.id)})

        assert result.model_dump() == {"ok": True, "data": {"action": "delete", "id": todo.id}}
        assert store.find_by_id(todo.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_id(self, dispatcher):
        result = await dispatcher.execute("delete_todo", {"selector": by_id(999)})
        assert result.model_dump() == {"ok": False, "message": NOT_FOUND_BY_ID}

    @pytest.mark.asyncio
    async def test_delete_by_unique_title(self, dispatcher, store):
        todo = store.create(title="buy milk")

        result = await dispatcher.execute("delete_todo", {"selector": by_title("buy milk")})

        assert result.ok is True
        assert result.model_dump()["data"]["id"] == todo.id

    @pytest.mark.asyncio
    async def test_delete_by_unknown_title(self, dispatcher):
        result = await dispatcher.execute("delete_todo", {"selector": by_title("buy milk")})
        assert result.model_dump() == {"ok": False, "message": NOT_FOUND_BY_TITLE}

    @pytest.mark.asyncio
    async def test_delete_by_duplicate_title_refuses_to_guess(self, dispatcher, store):
        """Two matches means nothing is deleted."""
        store.create(title="buy milk")
        store.create(title="buy milk")

        result = await dispatcher.execute("delete_todo", {"selector": by_title("buy milk")})

        assert result.model_dump() == {"ok": False, "message": AMBIGUOUS_TITLE}
        assert len(store.list()) == 2

    @pytest.mark.asyncio
    async def test_id_kind_without_id_is_a_validation_error(self, dispatcher):
        result = await dispatcher.execute("delete_todo", {"selector": by_id(None)})

        assert result.ok is False
        assert result.message.startswith("Validation error: selector: ")
        assert "numeric id" in result.message


class TestCheckDone:
    """Tests for check_done."""

    @pytest.mark.asyncio
    async def test_mark_done_is_idempotent(self, dispatcher, store):
        """Marking done twice leaves the todo done both times."""
        todo = store.create(title="buy milk")

        for _ in range(2):
            result = await dispatcher.execute("check_done", {"selector": by_id(todo.id), "done": True})
            data = result.model_dump()["data"]
            assert data["action"] == "check"
            assert data["todo"]["done"] is True

        assert store.find_by_id(todo.id).done == 1

    @pytest.mark.asyncio
    async def test_reopen(self, dispatcher, store):
        todo = store.create(title="buy milk")
        store.mark_done_by_id(todo.id, True)

        result = await dispatcher.execute("check_done", {"selector": by_id(todo.id), "done": False})

        assert result.model_dump()["data"]["todo"]["done"] is False

    @pytest.mark.asyncio
    async def test_mark_missing_id(self, dispatcher):
        result = await dispatcher.execute("check_done", {"selector": by_id(42), "done": True})
        assert result.model_dump() == {"ok": False, "message": NOT_FOUND_BY_ID}

    @pytest.mark.asyncio
    async def test_title_match_is_exact_and_case_sensitive(self, dispatcher, store):
        """Neither a different case nor a substring matches."""
        store.create(title="Buy milk")

        for title in ("buy milk", "Buy", "Buy milk and eggs"):
            result = await dispatcher.execute("check_done", {"selector": by_title(title), "done": True})
            assert result.model_dump() == {"ok": False, "message": NOT_FOUND_BY_TITLE}

        result = await dispatcher.execute("check_done", {"selector": by_title("Buy milk"), "done": True})
        assert result.ok is True


class TestResolveSelector:
    """Tests for selector resolution on unvalidated selectors."""

    def test_missing_id(self, store):
        with pytest.raises(ToolResolutionError, match=MISSING_ID):
            resolve_selector(store, Selector.model_construct(kind="id", id=None, title=None))

    def test_missing_title(self, store):
        with pytest.raises(ToolResolutionError, match=MISSING_TITLE):
            resolve_selector(store, Selector.model_construct(kind="title", id=None, title=" "))

    def test_id_is_used_directly(self, store):
        assert resolve_selector(store, Selector(kind="id", id=7)) == 7


class TestCalculator:
    """Tests for the calculator tool."""

    @pytest.mark.asyncio
    async def test_broadcast_left(self, dispatcher):
        result = await dispatcher.execute("calculator", {"operation": "add", "x": [5], "y": [1, 2, 3]})
        assert result.model_dump() == {"ok": True, "data": {"result": [6, 7, 8]}}

    @pytest.mark.asyncio
    async def test_broadcast_right(self, dispatcher):
        result = await dispatcher.execute("calculator", {"operation": "subtract", "x": [10, 20], "y": [1]})
        assert result.model_dump()["data"]["result"] == [9, 19]

    @pytest.mark.asyncio
    async def test_elementwise_multiply(self, dispatcher):
        result = await dispatcher.execute("calculator", {"operation": "multiply", "x": [2, 3], "y": [4, 5]})
        assert result.model_dump()["data"]["result"] == [8, 15]

    @pytest.mark.asyncio
    async def test_single_value_collapses_to_scalar(self, dispatcher):
        result = await dispatcher.execute("calculator", {"operation": "divide", "x": [9], "y": [3]})
        assert result.model_dump()["data"]["result"] == 3

    @pytest.mark.asyncio
    async def test_divide_by_zero_is_nan(self, dispatcher):
        """Division by zero gives NaN instead of raising."""
        result = await dispatcher.execute("calculator", {"operation": "divide", "x": [1], "y": [0]})

        assert result.ok is True
        assert math.isnan(result.model_dump()["data"]["result"])

    @pytest.mark.asyncio
    async def test_length_mismatch_is_validation_error(self, dispatcher):
        result = await dispatcher.execute("calculator", {"operation": "add", "x": [1, 2], "y": [1, 2, 3]})

        assert result.ok is False
        assert result.message.startswith("Validation error: ")
        assert "Array lengths must match" in result.message


class TestInternetSearch:
    """Tests for the internet_search tool."""

    @staticmethod
    def make_dispatcher(store, handler, api_key="test-key"):
        search_client = PerplexitySearchClient(
            SearchConfig(api_key=api_key, base_url="https://search.test"),
            transport=httpx.MockTransport(handler),
        )
        return ToolDispatcher(ToolsRegistry(store, search_client))

    @pytest.mark.asyncio
    async def test_forwards_answer_and_citations(self, store):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "choices": [{"message": {"role": "assistant", "content": "It is sunny."}}],
                    "citations": ["https://weather.test"],
                },
            )

        dispatcher = self.make_dispatcher(store, handler)
        result = await dispatcher.execute("internet_search", {"query": "weather in Paris"})

        assert result.model_dump() == {
            "ok": True,
            "data": {"answer": "It is sunny.", "citations": ["https://weather.test"]},
        }
        assert requests[0].url.path == "/chat/completions"
        assert requests[0].headers["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_http_error_is_forwarded(self, store):
        dispatcher = self.make_dispatcher(store, lambda request: httpx.Response(503, text="overloaded"))

        result = await dispatcher.execute("internet_search", {"query": "news"})

        assert result.model_dump() == {"ok": False, "message": "Perplexity request failed (503): overloaded"}

    @pytest.mark.asyncio
    async def test_transport_error_is_forwarded(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        dispatcher = self.make_dispatcher(store, handler)
        result = await dispatcher.execute("internet_search", {"query": "news"})

        assert result.model_dump() == {"ok": False, "message": "connection refused"}

    @pytest.mark.asyncio
    async def test_missing_credential(self, store):
        dispatcher = self.make_dispatcher(store, lambda request: httpx.Response(200), api_key=None)

        result = await dispatcher.execute("internet_search", {"query": "news"})

        assert result.ok is False
        assert "Missing PERPLEXITY_API_KEY" in result.message

    @pytest.mark.asyncio
    async def test_not_offered_without_search_client(self, dispatcher):
        result = await dispatcher.execute("internet_search", {"query": "news"})
        assert result.model_dump() == {"ok": False, "message": "Unknown tool: internet_search"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[], "sunny", None, {"choices": [None]}])
    async def test_non_object_body_is_a_negative_result(self, store, body):
        """Bodies that aren't a completion object come back as an error, not an exception."""
        dispatcher = self.make_dispatcher(store, lambda request: httpx.Response(200, json=body))

        result = await dispatcher.execute("internet_search", {"query": "weather"})

        assert result.ok is False
        assert result.message.startswith("Unexpected Perplexity response: ")

    @pytest.mark.asyncio
    async def test_citation_objects_are_a_negative_result(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "choices": [{"message": {"content": "It is sunny."}}],
                    "citations": [{"url": "https://weather.test"}],
                },
            )

        dispatcher = self.make_dispatcher(store, handler)
        result = await dispatcher.execute("internet_search", {"query": "weather"})

        assert result.ok is False
        assert result.message.startswith("Unexpected Perplexity response: ")

    @pytest.mark.asyncio
    async def test_missing_choices_gives_empty_answer(self, store):
        dispatcher = self.make_dispatcher(store, lambda request: httpx.Response(200, json={"citations": []}))

        result = await dispatcher.execute("internet_search", {"query": "weather"})

        assert result.model_dump() == {"ok": True, "data": {"answer": "", "citations": []}}
