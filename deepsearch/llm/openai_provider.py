from __future__ import annotations

from typing import Any

from langchain_core.tools import BaseTool
from langchain_openai import ChatOpenAI

from deepsearch.config import settings
from deepsearch.utils.logger import agent_logger

from .provider import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI (or any OpenAI-compatible endpoint) chat model provider."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        options: dict[str, Any] | None = None,
    ):
        # Explicit arguments win over global settings
        self.model = model or settings.model
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.options = options if options is not None else settings.openai_options

        if not self.model:
            raise ValueError(
                "LLM model not specified. Please set 'model' in "
                ".deepsearch/config.json or pass model parameter explicitly"
            )

        agent_logger.info(
            "Initializing OpenAI provider",
            model=self.model,
            base_url=self.base_url,
            option_keys=list(self.options.keys()),
        )

        kwargs: dict[str, Any] = {
            "model": self.model,
            "streaming": True,
            "stream_usage": True,
            **self.options,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.base_url:
            kwargs["base_url"] = self.base_url
        self.llm = ChatOpenAI(**kwargs)

    def get_model_name(self) -> str:
        return self.model

    def bind_tools(self, tools: list[BaseTool]) -> Any:
        return self.llm.bind_tools(tools)
