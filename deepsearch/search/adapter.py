from __future__ import annotations

import asyncio

from deepsearch.config.constants import DEFAULT_SEARCH_RESULT_COUNT
from deepsearch.core.errors import SearchError
from deepsearch.utils.logger import search_logger

from .types import SearchProvider, SearchResult


class SearchToolAdapter:
    """Runs one query against a provider with a bounded result count.

    Failures of any kind come out as `SearchError`. Cancellation is re-raised
    as-is so a disconnecting client stops the search immediately.
    """

    def __init__(
        self,
        provider: SearchProvider,
        result_count: int = DEFAULT_SEARCH_RESULT_COUNT,
    ) -> None:
        if result_count < 1:
            raise ValueError("result_count must be at least 1")
        self.provider = provider
        self.result_count = result_count

    async def search(self, query: str) -> list[SearchResult]:
        query = query.strip()
        if not query:
            raise SearchError("Search query is empty")

        search_logger.info(
            "Search started",
            provider=self.provider.name,
            query=query,
            result_count=self.result_count,
        )
        try:
            results = await self.provider.search(query, self.result_count)
        except asyncio.CancelledError:
            search_logger.info("Search cancelled", provider=self.provider.name)
            raise
        except SearchError:
            search_logger.error(
                "Search provider returned an unusable response",
                exc_info=True,
                provider=self.provider.name,
            )
            raise
        except Exception as e:
            search_logger.error(
                "Search provider failed",
                exc_info=True,
                provider=self.provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SearchError(f"Search failed for query: {query}") from e

        results = results[: self.result_count]
        search_logger.info(
            "Search finished", provider=self.provider.name, count=len(results)
        )
        return results
