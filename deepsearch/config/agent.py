"""Explicit per-orchestrator configuration value."""

from __future__ import annotations

from dataclasses import dataclass

from deepsearch.config.constants import (
    DEFAULT_MAX_STEPS,
    DEFAULT_MODEL,
    DEFAULT_SEARCH_RESULT_COUNT,
    DEFAULT_TITLE_MAX_LENGTH,
)
from deepsearch.prompts.system import SEARCH_ASSISTANT_PROMPT


@dataclass(frozen=True)
class AgentConfig:
    """Everything a turn needs to know about policy, injected at construction."""

    model: str = DEFAULT_MODEL
    max_steps: int = DEFAULT_MAX_STEPS
    search_result_count: int = DEFAULT_SEARCH_RESULT_COUNT
    title_max_length: int = DEFAULT_TITLE_MAX_LENGTH
    system_prompt: str = SEARCH_ASSISTANT_PROMPT

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.search_result_count < 1:
            raise ValueError("search_result_count must be at least 1")
        if self.title_max_length < 1:
            raise ValueError("title_max_length must be at least 1")
