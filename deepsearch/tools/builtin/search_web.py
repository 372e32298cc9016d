from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from deepsearch.search import SearchResult, SearchToolAdapter

from ..base_tool import BaseTool


class SearchWebArgs(BaseModel):
    query: str = Field(..., description="The query to search the web for")


class SearchWebSuccess(BaseModel):
    type: Literal["search_web_result"] = "search_web_result"
    query: str
    results: list[SearchResult]


class SearchWebTool(BaseTool):
    name: str = "searchWeb"
    description: str = (
        "Search the web for up-to-date information. Returns a ranked list of "
        "results, each with a title, a link and a snippet."
    )
    args_schema: type[BaseModel] | dict[str, Any] | None = SearchWebArgs

    adapter: SearchToolAdapter = Field(exclude=True)

    async def _arun(self, **kwargs: Any) -> dict[str, Any]:
        query = kwargs["query"]
        results = await self.adapter.search(query)
        return SearchWebSuccess(query=query, results=results).model_dump(mode="json")
