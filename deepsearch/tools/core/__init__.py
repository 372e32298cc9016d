from .types import ToolError, parse_tool_result

__all__ = ["ToolError", "parse_tool_result"]
