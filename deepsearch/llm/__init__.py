from .messages import to_langchain_messages
from .openai_provider import OpenAIProvider
from .provider import LLMProvider

__all__ = ["LLMProvider", "OpenAIProvider", "to_langchain_messages"]
