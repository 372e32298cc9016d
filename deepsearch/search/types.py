from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class SearchResult(BaseModel):
    title: str
    link: str
    snippet: str = ""


class SearchProvider(Protocol):
    """Anything that can turn a query into ranked results."""

    name: str

    async def search(self, query: str, result_count: int) -> list[SearchResult]: ...
