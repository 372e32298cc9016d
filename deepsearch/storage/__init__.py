from .conversations import ConversationStore

__all__ = ["ConversationStore"]
