from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from langchain_core.tools import BaseTool as LCBaseTool

from deepsearch.core.errors import DeepSearchError
from deepsearch.utils.logger import agent_logger

from .base_tool import BaseTool
from .core.types import ToolError


class ToolRegistry:
    """Holds tools by name and exposes a uniform `run_tool` API.

    `run_tool` never raises for a tool's own failure: bad arguments and
    execution errors come back as `ToolError` dicts so one failing call cannot
    take down its siblings. Cancellation is not an `Exception` and passes
    straight through.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> Iterable[LCBaseTool]:
        return list(self._tools.values())

    async def run_tool(self, name: str, /, **kwargs: Any) -> dict[str, Any]:
        tool = self.get(name)
        if tool is None:
            return ToolError(
                name=name,
                code="not_found",
                error=f"Tool not found: {name}",
            ).model_dump(exclude_none=True)

        agent_logger.info("Tool call", tool=name, args=kwargs)

        args = kwargs
        schema = getattr(tool, "args_schema", None)
        if isinstance(schema, type):
            try:
                args = schema(**kwargs).model_dump()
            except Exception as ve:
                return ToolError(
                    name=name,
                    code="args_validation",
                    error=str(ve),
                    error_type=type(ve).__name__,
                ).model_dump(exclude_none=True)

        try:
            result = await tool.arun(tool_input=args)
        except Exception as e:
            agent_logger.error(
                "Tool execution failed",
                tool=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            # Only our own errors carry caller-safe messages
            message = str(e) if isinstance(e, DeepSearchError) else "Tool failed"
            return ToolError(
                name=name,
                code="execution_failed",
                error=message,
                error_type=type(e).__name__,
            ).model_dump(exclude_none=True)

        agent_logger.info(
            "Tool result",
            tool=name,
            size_bytes=len(json.dumps(result, ensure_ascii=False).encode("utf-8")),
        )
        return result
