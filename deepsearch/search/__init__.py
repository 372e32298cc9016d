"""Web search: provider implementations and the bounded, cancellable adapter."""

from .adapter import SearchToolAdapter
from .providers import (
    DuckDuckGoSearchProvider,
    SerperSearchProvider,
    build_search_provider,
)
from .types import SearchProvider, SearchResult

__all__ = [
    "SearchProvider",
    "SearchResult",
    "SearchToolAdapter",
    "SerperSearchProvider",
    "DuckDuckGoSearchProvider",
    "build_search_provider",
]
