from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel

__all__ = [
    "ToolError",
    "parse_tool_result",
]


class ToolError(BaseModel):
    """Standard error result for all tools.

    Use isinstance(result, ToolError) to check for errors.
    """

    type: Literal["tool_error"] = "tool_error"
    name: str
    code: str
    error: str
    error_type: str | None = None


TSuccess = TypeVar("TSuccess", bound=BaseModel)


def parse_tool_result(
    result: dict[str, Any], success_type: type[TSuccess]
) -> TSuccess | ToolError:
    """Parse tool result dict into typed Pydantic model.

    Example:
        r = parse_tool_result(result, SearchWebSuccess)
        if isinstance(r, ToolError):
            return f"Error: {r.error}"
        return f"{len(r.results)} results"
    """
    if result.get("type") == "tool_error":
        return ToolError.model_validate(result)
    return success_type.model_validate(result)
