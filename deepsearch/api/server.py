"""FastAPI server for DeepSearch.

This module is a thin ASGI entrypoint that delegates to create_app().
"""

from deepsearch.api.app import create_app

app = create_app()
