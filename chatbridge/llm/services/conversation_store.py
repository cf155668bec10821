"""In-memory, user-scoped store of chat sessions and their message logs."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from ...core.exceptions import MessageNotFoundError, SessionNotFoundError
from ...core.logging_config import get_logger
from ..schemas.session import ChatSession, StoredMessage, StoredRoleLiteral

logger = get_logger(__name__)


class ConversationStore:
    """Append-only message log per session.

    Every operation is scoped to `user_id`; a session that exists but belongs
    to someone else is reported exactly like a missing one. Each public call
    runs under a single lock, so it is atomic with respect to other calls.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[StoredMessage]] = {}
        self._lock = asyncio.Lock()

    async def create_session(self, user_id: str, name: str) -> ChatSession:
        session = ChatSession(name=name, user_id=user_id)
        async with self._lock:
            self._sessions[session.id] = session
            self._messages[session.id] = []
        logger.info("chat_session_created", session_id=session.id, user_id=user_id)
        return session.model_copy()

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        async with self._lock:
            sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        sessions.sort(key=lambda session: session.updated_at, reverse=True)
        return [session.model_copy() for session in sessions]

    async def get_session(self, user_id: str, session_id: str) -> ChatSession:
        async with self._lock:
            return self._owned_session(user_id, session_id).model_copy()

    async def rename_session(self, user_id: str, session_id: str, name: str) -> ChatSession:
        async with self._lock:
            session = self._owned_session(user_id, session_id)
            session.name = name
            session.updated_at = _utcnow()
            return session.model_copy()

    async def touch_session(self, user_id: str, session_id: str) -> None:
        async with self._lock:
            self._owned_session(user_id, session_id).updated_at = _utcnow()

    async def delete_session(self, user_id: str, session_id: str) -> None:
        async with self._lock:
            self._owned_session(user_id, session_id)
            del self._sessions[session_id]
            self._messages.pop(session_id, None)
        logger.info("chat_session_deleted", session_id=session_id, user_id=user_id)

    async def get_messages(self, user_id: str, session_id: str) -> list[StoredMessage]:
        async with self._lock:
            self._owned_session(user_id, session_id)
            return [message.model_copy() for message in self._messages[session_id]]

    async def get_message(self, user_id: str, message_id: str) -> StoredMessage:
        async with self._lock:
            for messages in self._messages.values():
                for message in messages:
                    if message.id == message_id and message.user_id == user_id:
                        return message.model_copy()
        raise MessageNotFoundError(message_id)

    async def add_message(
        self,
        user_id: str,
        session_id: str,
        content: str,
        role: StoredRoleLiteral,
        structured_content: dict[str, Any] | None = None,
        widget_id: str | None = None,
    ) -> StoredMessage:
        message = StoredMessage(
            content=content,
            role=role,
            session_id=session_id,
            user_id=user_id,
            structured_content=structured_content or None,
            widget_id=widget_id or None,
        )
        async with self._lock:
            session = self._owned_session(user_id, session_id)
            self._messages[session_id].append(message)
            session.updated_at = message.created_at
        return message.model_copy()

    async def delete_messages(self, user_id: str, message_ids: Iterable[str]) -> int:
        """Delete the caller's messages among `message_ids`; others are ignored."""

        targets = set(message_ids)
        deleted = 0
        async with self._lock:
            for session_id, messages in self._messages.items():
                kept = [m for m in messages if not (m.id in targets and m.user_id == user_id)]
                deleted += len(messages) - len(kept)
                self._messages[session_id] = kept
        return deleted

    def _owned_session(self, user_id: str, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise SessionNotFoundError(session_id)
        return session


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)
