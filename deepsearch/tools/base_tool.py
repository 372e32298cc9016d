from __future__ import annotations

from abc import ABC
from typing import Any
from uuid import UUID

from langchain_core.callbacks.base import BaseCallbackHandler
from langchain_core.callbacks.manager import BaseCallbackManager
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool as LCBaseTool


class BaseTool(LCBaseTool, ABC):
    """Base class for server-side tools.

    Tools receive already validated arguments as a dict and return a JSON
    friendly dict. Subclasses implement `_arun`.
    """

    # Tool subclasses should declare: name: str, description: str, args_schema: type[BaseModel]

    # Match LangChain signature for compatibility and type-checking
    async def arun(
        self,
        tool_input: str | dict[Any, Any],
        verbose: bool | None = None,
        start_color: str | None = None,
        color: str | None = None,
        callbacks: list[BaseCallbackHandler] | BaseCallbackManager | None = None,
        *,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        run_name: str | None = None,
        run_id: UUID | None = None,
        config: RunnableConfig | None = None,
        tool_call_id: str | None = None,
        **kwargs: Any,
    ) -> Any:
        if not isinstance(tool_input, dict):
            raise TypeError(
                "tool_input must be a dict of arguments; callers should pass structured args via tool_input"
            )
        merged_kwargs: dict[Any, Any] = {**tool_input, **kwargs}
        return await self._arun(**merged_kwargs)

    def _run(self, *args: Any, **kwargs: Any) -> Any:  # pragma: no cover
        raise NotImplementedError(f"{self.name} only supports async execution")
