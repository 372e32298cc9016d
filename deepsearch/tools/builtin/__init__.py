"""Builtin tool package.

Static export of tool classes; `build_registry` registers them explicitly.
"""

from __future__ import annotations

from deepsearch.tools.builtin.search_web import SearchWebTool

TOOL_CLASSES = [
    SearchWebTool,
]

__all__ = [
    "TOOL_CLASSES",
    "SearchWebTool",
]
