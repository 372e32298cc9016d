"""Tests for the searchWeb tool."""

import pytest
from fakes import FakeSearchProvider, make_results

from deepsearch.core.errors import SearchError
from deepsearch.search import SearchToolAdapter
from deepsearch.tools.builtin.search_web import (
    SearchWebArgs,
    SearchWebSuccess,
    SearchWebTool,
)
from deepsearch.tools.core.types import ToolError, parse_tool_result


def make_tool(provider: FakeSearchProvider, result_count: int = 10) -> SearchWebTool:
    return SearchWebTool(adapter=SearchToolAdapter(provider, result_count=result_count))


def test_tool_metadata_exposed_to_model():
    tool = make_tool(FakeSearchProvider())
    assert tool.name == "searchWeb"
    assert tool.args_schema is SearchWebArgs
    assert set(SearchWebArgs.model_json_schema()["properties"]) == {"query"}


@pytest.mark.asyncio
async def test_returns_search_web_result():
    provider = FakeSearchProvider(make_results(12))
    result = await make_tool(provider).arun({"query": "weather in Paris"})

    parsed = parse_tool_result(result, SearchWebSuccess)
    assert isinstance(parsed, SearchWebSuccess)
    assert parsed.query == "weather in Paris"
    assert len(parsed.results) == 10
    assert set(result["results"][0]) == {"title", "link", "snippet"}
    assert provider.queries == ["weather in Paris"]


@pytest.mark.asyncio
async def test_search_failure_raises_for_registry_to_handle():
    tool = make_tool(FakeSearchProvider(error=RuntimeError("boom")))
    with pytest.raises(SearchError):
        await tool.arun({"query": "q"})


def test_parse_tool_result_recognises_errors():
    parsed = parse_tool_result(
        {"type": "tool_error", "name": "searchWeb", "code": "execution_failed", "error": "x"},
        SearchWebSuccess,
    )
    assert isinstance(parsed, ToolError)
    assert parsed.code == "execution_failed"


@pytest.mark.asyncio
async def test_arun_requires_dict_input():
    with pytest.raises(TypeError):
        await make_tool(FakeSearchProvider()).arun("weather")
