"""
DeepSearch Agent - a streaming web-search chat backend.

This package provides:
- A bounded multi-step reasoning loop with concurrent web search tool calls
- Streaming support via Server-Sent Events
- Transactional, replace-all conversation persistence
- Extensible LLM and search provider architecture
"""

__version__ = "0.4.0"
