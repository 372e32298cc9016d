"""Database package: engine/session management and ORM models."""

from .base import get_engine, get_session, write_transaction
from .models import BaseORM, ChatORM, MessageORM, UserORM

__all__ = [
    "get_engine",
    "get_session",
    "write_transaction",
    "BaseORM",
    "UserORM",
    "ChatORM",
    "MessageORM",
]
