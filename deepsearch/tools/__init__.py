"""Tools exposed to the model and the step loop that executes them."""

from .base_tool import BaseTool
from .build_registry import build_registry
from .registry import ToolRegistry

__all__ = ["BaseTool", "ToolRegistry", "build_registry"]
