"""Core cross-cutting types: the error taxonomy."""

from .errors import (
    AuthorizationError,
    ChatOwnershipError,
    DeepSearchError,
    GenerationError,
    InvalidPartTransitionError,
    PersistenceError,
    SearchError,
    StreamClosedError,
    UnknownOwnerError,
)

__all__ = [
    "DeepSearchError",
    "AuthorizationError",
    "UnknownOwnerError",
    "ChatOwnershipError",
    "PersistenceError",
    "GenerationError",
    "SearchError",
    "InvalidPartTransitionError",
    "StreamClosedError",
]
