from __future__ import annotations

from deepsearch.search import SearchToolAdapter

from .builtin.search_web import SearchWebTool
from .registry import ToolRegistry


def build_registry(
    search_adapter: SearchToolAdapter,
    exclude: set[str] | None = None,
) -> ToolRegistry:
    """Build the tool registry for one orchestrator.

    Tools that need collaborators get them injected here rather than reaching
    for globals.
    """
    registry = ToolRegistry()
    exclude = exclude or set()

    for tool in (SearchWebTool(adapter=search_adapter),):
        if tool.name in exclude:
            continue
        registry.register(tool)

    return registry
