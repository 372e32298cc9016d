"""Error taxonomy shared by the store, the search adapter and the orchestrator.

Only the class (and the stable `code`) of these errors ever reaches a client;
messages are for logs.
"""

from __future__ import annotations


class DeepSearchError(Exception):
    """Base class for all application errors."""

    code: str = "internal_error"


class AuthorizationError(DeepSearchError):
    """Caller identity is missing, unknown, or not allowed to touch a resource."""

    code = "unauthorized"


class UnknownOwnerError(AuthorizationError):
    """The owner id passed to the store does not refer to a registered identity."""

    code = "unknown_owner"

    def __init__(self, owner_id: str):
        super().__init__(f"User not found: {owner_id}")
        self.owner_id = owner_id


class ChatOwnershipError(AuthorizationError):
    """The chat exists but belongs to a different identity."""

    code = "chat_not_owned"

    def __init__(self, chat_id: str, owner_id: str):
        super().__init__(f"Chat {chat_id} does not belong to user {owner_id}")
        self.chat_id = chat_id
        self.owner_id = owner_id


class PersistenceError(DeepSearchError):
    """A snapshot could not be written or read."""

    code = "persistence_failed"


class GenerationError(DeepSearchError):
    """The language model step itself failed."""

    code = "generation_failed"


class SearchError(DeepSearchError):
    """The search provider failed (network, HTTP status, malformed payload)."""

    code = "search_failed"


class InvalidPartTransitionError(DeepSearchError):
    """A tool invocation part was moved backwards or mutated after its result."""

    code = "invalid_part_transition"


class StreamClosedError(DeepSearchError):
    """The consumer side of an event stream is gone (client disconnected)."""

    code = "stream_closed"
