"""Durable chat storage with replace-all snapshot semantics.

A chat's message list is never appended to: every write replaces the whole
snapshot inside one transaction, renumbering positions from zero. Readers on
other connections see either the previous snapshot or the new one.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from deepsearch.core.errors import (
    ChatOwnershipError,
    PersistenceError,
    UnknownOwnerError,
)
from deepsearch.db import BaseORM, ChatORM, MessageORM, UserORM
from deepsearch.db.base import get_engine, get_session, write_transaction
from deepsearch.domain.messages import Chat, ChatSummary, Message, UpsertResult
from deepsearch.utils.logger import storage_logger


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class ConversationStore:
    """Chats and their ordered messages, scoped by owner."""

    def __init__(self, db_path: Path | None = None, engine: Engine | None = None):
        if db_path is None and engine is None:
            raise ValueError("ConversationStore needs a db_path or an engine")
        self._db_path = db_path
        self._engine: Engine | None = engine
        self._schema_ready = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False

    def _get_engine(self) -> Engine:
        if self._engine is None:
            if self._db_path is None:
                raise PersistenceError("Store engine was disposed and has no db_path")
            self._engine = get_engine(self._db_path)
        return self._engine

    def _ensure_db(self) -> Engine:
        engine = self._get_engine()
        if not self._schema_ready:
            BaseORM.metadata.create_all(engine)
            self._schema_ready = True
        return engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._schema_ready = False

    def ensure_user(self, user_id: str, name: str | None = None) -> None:
        """Register an identity handed over by the session guard (idempotent)."""
        engine = self._ensure_db()
        try:
            with write_transaction(engine) as session:
                user = session.get(UserORM, user_id)
                if user is None:
                    session.add(UserORM(id=user_id, name=name))
                    storage_logger.info("Registered user", user_id=user_id)
                elif name and user.name != name:
                    user.name = name
        except SQLAlchemyError as e:
            storage_logger.error(
                "Failed to register user", exc_info=True, user_id=user_id
            )
            raise PersistenceError(f"Failed to register user {user_id}") from e

    def check_access(self, owner_id: str, chat_id: str) -> bool:
        """Read-only version of upsert's checks.

        Returns True when the chat exists and belongs to `owner_id`, False when
        it does not exist yet; raises the same authorization errors as upsert.
        """
        engine = self._ensure_db()
        try:
            with get_session(engine) as session:
                if session.get(UserORM, owner_id) is None:
                    raise UnknownOwnerError(owner_id)
                chat = session.get(ChatORM, chat_id)
        except SQLAlchemyError as e:
            storage_logger.error("Chat access check failed", exc_info=True)
            raise PersistenceError(f"Failed to load chat {chat_id}") from e
        if chat is None:
            return False
        if chat.user_id != owner_id:
            raise ChatOwnershipError(chat_id, owner_id)
        return True

    def upsert(
        self,
        owner_id: str,
        chat_id: str,
        title: str,
        messages: Sequence[Message],
    ) -> UpsertResult:
        """Replace the chat's full snapshot, creating the chat when missing.

        Raises UnknownOwnerError / ChatOwnershipError before anything is
        written; any database failure rolls back and raises PersistenceError.
        """
        engine = self._ensure_db()
        rows = [
            (message.role, [part.model_dump(mode="json") for part in message.parts])
            for message in messages
        ]
        now = datetime.now(UTC)
        try:
            with write_transaction(engine) as session:
                if session.get(UserORM, owner_id) is None:
                    raise UnknownOwnerError(owner_id)

                chat = session.get(ChatORM, chat_id)
                if chat is not None and chat.user_id != owner_id:
                    raise ChatOwnershipError(chat_id, owner_id)

                if chat is None:
                    session.add(
                        ChatORM(
                            id=chat_id,
                            user_id=owner_id,
                            title=title,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                    session.flush()
                else:
                    session.execute(
                        delete(MessageORM).where(MessageORM.chat_id == chat_id)
                    )
                    chat.title = title
                    chat.updated_at = now

                session.add_all(
                    MessageORM(
                        chat_id=chat_id,
                        role=role,
                        parts=parts,
                        position=position,
                        created_at=now,
                    )
                    for position, (role, parts) in enumerate(rows)
                )
        except SQLAlchemyError as e:
            storage_logger.error(
                "Chat upsert failed",
                exc_info=True,
                chat_id=chat_id,
                owner_id=owner_id,
            )
            raise PersistenceError(f"Failed to save chat {chat_id}") from e

        storage_logger.info(
            "Chat snapshot saved",
            chat_id=chat_id,
            owner_id=owner_id,
            message_count=len(rows),
        )
        return UpsertResult(chat_id=chat_id, title=title)

    def get(self, owner_id: str, chat_id: str) -> Chat | None:
        """Return the chat with ordered messages, or None if missing or foreign."""
        engine = self._ensure_db()
        try:
            with get_session(engine) as session:
                chat = session.scalars(
                    select(ChatORM).where(
                        ChatORM.id == chat_id, ChatORM.user_id == owner_id
                    )
                ).first()
                if chat is None:
                    return None
                rows = session.scalars(
                    select(MessageORM)
                    .where(MessageORM.chat_id == chat_id)
                    .order_by(MessageORM.position)
                ).all()
                return Chat(
                    id=chat.id,
                    title=chat.title,
                    created_at=_as_utc(chat.created_at),
                    updated_at=_as_utc(chat.updated_at),
                    messages=[
                        Message.model_validate(
                            {"id": str(row.id), "role": row.role, "parts": row.parts}
                        )
                        for row in rows
                    ],
                )
        except SQLAlchemyError as e:
            storage_logger.error("Chat read failed", exc_info=True, chat_id=chat_id)
            raise PersistenceError(f"Failed to load chat {chat_id}") from e

    def list(self, owner_id: str) -> list[ChatSummary]:
        """Chats owned by `owner_id`, most recently updated first."""
        engine = self._ensure_db()
        try:
            with get_session(engine) as session:
                chats = session.scalars(
                    select(ChatORM)
                    .where(ChatORM.user_id == owner_id)
                    .order_by(ChatORM.updated_at.desc(), ChatORM.created_at.desc())
                ).all()
                return [
                    ChatSummary(
                        id=chat.id,
                        title=chat.title,
                        created_at=_as_utc(chat.created_at),
                        updated_at=_as_utc(chat.updated_at),
                    )
                    for chat in chats
                ]
        except SQLAlchemyError as e:
            storage_logger.error("Chat list failed", exc_info=True, owner_id=owner_id)
            raise PersistenceError("Failed to list chats") from e
