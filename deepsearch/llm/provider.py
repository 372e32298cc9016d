"""LLM provider abstraction for flexible model integration."""

from abc import ABC, abstractmethod
from typing import Any

from langchain_core.tools import BaseTool


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the model name."""
        pass

    @abstractmethod
    def bind_tools(self, tools: list[BaseTool]) -> Any:
        """Bind tools to the LLM for function calling.

        The returned runnable must support `astream(messages)` yielding
        `AIMessageChunk`s.
        """
        pass
