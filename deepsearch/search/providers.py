"""Concrete search providers.

Providers raise whatever their transport raises; `SearchToolAdapter` is the
single place that normalizes failures into `SearchError`.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from ddgs import DDGS

from deepsearch.config.constants import DEFAULT_SERPER_BASE_URL, DEFAULT_SEARCH_TIMEOUT
from deepsearch.config.settings import Settings
from deepsearch.core.errors import SearchError
from deepsearch.utils.logger import search_logger

from .types import SearchProvider, SearchResult


class SerperSearchProvider:
    """Google results through the Serper HTTP API."""

    name = "serper"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_SERPER_BASE_URL,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Serper API key is required")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str, result_count: int) -> list[SearchResult]:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(
                "/search",
                json={"q": query, "num": result_count},
                headers={"X-API-KEY": self.api_key},
            )
            response.raise_for_status()
            data: dict[str, Any] = response.json()

        organic = data.get("organic")
        if not isinstance(organic, list):
            raise SearchError("Serper response has no organic results list")
        return [
            SearchResult(
                title=item.get("title", ""),
                link=item["link"],
                snippet=item.get("snippet", ""),
            )
            for item in organic
            if isinstance(item, dict) and item.get("link")
        ]


class DuckDuckGoSearchProvider:
    """Keyless fallback using the `ddgs` metasearch client."""

    name = "duckduckgo"

    def __init__(self, region: str = "us-en", safesearch: str = "moderate") -> None:
        self.region = region
        self.safesearch = safesearch

    def _search_sync(self, query: str, result_count: int) -> list[SearchResult]:
        with DDGS() as ddgs:
            rows = ddgs.text(
                query,
                region=self.region,
                safesearch=self.safesearch,
                max_results=result_count,
            )
        return [
            SearchResult(
                title=row.get("title", ""),
                link=row.get("href", row.get("link", "")),
                snippet=row.get("body", row.get("snippet", "")),
            )
            for row in rows or []
            if row.get("href") or row.get("link")
        ]

    async def search(self, query: str, result_count: int) -> list[SearchResult]:
        # ddgs is blocking; a cancelled await abandons the worker thread's result
        return await asyncio.to_thread(self._search_sync, query, result_count)


def build_search_provider(settings: Settings) -> SearchProvider:
    provider = settings.search_provider
    search_logger.debug("Building search provider", provider=provider)
    if provider == "serper":
        return SerperSearchProvider(
            api_key=settings.serper_api_key or "",
            base_url=settings.serper_base_url,
            timeout=settings.search_timeout,
        )
    if provider == "duckduckgo":
        return DuckDuckGoSearchProvider()
    raise ValueError(f"Unknown search provider: {provider}")
