"""Caller identity.

The chat core only consumes `SessionGuard.authenticate`; how identities are
proven is up to the implementation. `BearerTokenSessionGuard` is the one the
server ships with: static tokens from config, re-read on every request so
edits to `auth.tokens` apply without a restart.
"""

from __future__ import annotations

import asyncio
import hmac
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from starlette.requests import Request

from deepsearch.storage.conversations import ConversationStore
from deepsearch.utils.logger import api_logger


@dataclass(frozen=True)
class Identity:
    id: str
    name: str | None = None


class SessionGuard(Protocol):
    async def authenticate(self, request: Request) -> Identity | None: ...


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class BearerTokenSessionGuard:
    def __init__(
        self,
        store: ConversationStore,
        tokens: Callable[[], dict[str, dict[str, Any]]],
    ) -> None:
        self.store = store
        self._tokens = tokens

    def _lookup(self, token: str) -> Identity | None:
        for known, entry in self._tokens().items():
            if hmac.compare_digest(known.encode(), token.encode()):
                if not isinstance(entry, dict) or not entry.get("id"):
                    api_logger.warning("Auth token entry has no id; ignoring")
                    return None
                return Identity(id=str(entry["id"]), name=entry.get("name"))
        return None

    async def authenticate(self, request: Request) -> Identity | None:
        token = _bearer_token(request)
        if token is None:
            return None
        identity = self._lookup(token)
        if identity is None:
            api_logger.info("Rejected unknown bearer token")
            return None
        await asyncio.to_thread(self.store.ensure_user, identity.id, identity.name)
        return identity
