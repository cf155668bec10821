"""Session-level orchestration around the drivers: history in, one assistant message out."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Sequence
from typing import Any

from ...core.channel import ChunkChannel
from ...core.config import ChatBridgeSettings
from ...core.exceptions import ChannelClosed
from ...core.logging_config import get_logger
from ...core.types import AuthContext
from ..schemas.chat import ChatMessage, StreamChunk
from ..schemas.session import ChatSession, StoredMessage, StoredRoleLiteral
from .completion_driver import CompletionDriver
from .conversation_store import ConversationStore
from .llm_client import LLMClient
from .streaming_driver import StreamingDriver

logger = get_logger(__name__)

HISTORY_RESET_MARKER = "-- IGNORE CONVERSATION BEFORE THIS LINE --"
TITLE_HISTORY_LENGTH = 3

_TITLE_PROMPT = (
    "Based on the following conversation, generate a short, descriptive name "
    "(3-5 words max) for this chat session. Return only the name, nothing else."
)


def trim_history(messages: Sequence[StoredMessage]) -> list[StoredMessage]:
    """Drop everything before the last message containing the reset marker."""

    history: list[StoredMessage] = []
    for message in messages:
        if HISTORY_RESET_MARKER in message.content:
            history = []
        history.append(message)
    return history


def to_chat_messages(messages: Sequence[StoredMessage]) -> list[ChatMessage]:
    return [ChatMessage(role=message.role, content=message.content) for message in messages]


def merge_structured_content(
    structured_content: dict[str, Any] | None, meta: dict[str, Any] | None
) -> dict[str, Any] | None:
    if not structured_content and not meta:
        return None
    merged = dict(structured_content or {})
    if meta:
        merged["_meta"] = meta
    return merged


class ConversationService:
    """Runs chat turns for persisted sessions.

    Runs against the same session are serialised with a per-session lock, so a
    redo and a fresh send cannot interleave their reads and writes of the log.
    """

    def __init__(
        self,
        store: ConversationStore,
        streaming_driver: StreamingDriver,
        completion_driver: CompletionDriver,
        title_client: LLMClient,
        settings: ChatBridgeSettings,
    ) -> None:
        self._store = store
        self._streaming = streaming_driver
        self._completion = completion_driver
        self._title_client = title_client
        self._settings = settings
        # Entries disappear once no run holds or awaits the lock.
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def store(self) -> ConversationStore:
        return self._store

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._session_locks.setdefault(session_id, asyncio.Lock())

    async def create_session(self, user_id: str, name: str | None = None) -> ChatSession:
        return await self._store.create_session(user_id, name or self._settings.default_session_name)

    async def add_user_message(
        self,
        user_id: str,
        session_id: str,
        content: str,
        role: StoredRoleLiteral = "user",
        structured_content: dict[str, Any] | None = None,
        widget_id: str | None = None,
    ) -> StoredMessage:
        logger.info(
            "chat_message_added",
            user_id=user_id,
            session_id=session_id,
            role=role,
            widget_id=widget_id,
        )
        return await self._store.add_message(
            user_id, session_id, content, role, structured_content, widget_id
        )

    async def delete_session(self, user_id: str, session_id: str) -> None:
        await self._store.delete_session(user_id, session_id)
        self._session_locks.pop(session_id, None)

    def stream_message(self, user_id: str, message_id: str) -> ChunkChannel[StreamChunk]:
        """Stream the assistant reply to a persisted message.

        The returned channel carries the driver's chunks in order, except that
        the driver's own `done` is replaced by a single `done` carrying the id
        of the persisted assistant message.
        """

        channel: ChunkChannel[StreamChunk] = ChunkChannel(maxsize=self._settings.chunk_queue_size)

        async def produce(target: ChunkChannel[StreamChunk]) -> None:
            await self._run_stream(user_id, message_id, target)

        channel.spawn(produce)
        return channel

    async def _run_stream(
        self, user_id: str, message_id: str, channel: ChunkChannel[StreamChunk]
    ) -> None:
        user_message = await self._store.get_message(user_id, message_id)
        session_id = user_message.session_id

        async with self._lock_for(session_id):
            session = await self._store.get_session(user_id, session_id)
            await self._store.touch_session(user_id, session_id)
            history = trim_history(await self._store.get_messages(user_id, session_id))
            logger.info(
                "chat_stream_started",
                user_id=user_id,
                session_id=session_id,
                message_id=message_id,
                history_messages=len(history),
            )

            accumulated: list[str] = []
            final_meta: dict[str, Any] | None = None
            final_structured: dict[str, Any] | None = None
            final_widget_id: str | None = None

            driver_channel = self._streaming.stream(
                to_chat_messages(history),
                AuthContext(user_id=user_id),
                maxsize=self._settings.chunk_queue_size,
            )
            try:
                async for chunk in driver_channel:
                    if chunk.type == "done":
                        continue
                    if chunk.type == "content" and chunk.content:
                        accumulated.append(chunk.content)
                    elif chunk.type == "metadata" and chunk.metadata is not None:
                        final_meta = chunk.metadata.meta
                        final_structured = chunk.metadata.structured_content
                        final_widget_id = chunk.metadata.widget_id
                    await channel.send(chunk)
            except ChannelClosed:
                logger.info("chat_stream_abandoned", session_id=session_id, message_id=message_id)
                raise
            except Exception:
                logger.exception(
                    "chat_stream_failed",
                    user_id=user_id,
                    session_id=session_id,
                    partial_content_length=len("".join(accumulated)),
                )
                raise
            finally:
                await driver_channel.aclose()

            content = "".join(accumulated)
            assistant_message = await self._store.add_message(
                user_id,
                session_id,
                content,
                "assistant",
                merge_structured_content(final_structured, final_meta),
                final_widget_id,
            )
            logger.info(
                "chat_stream_saved",
                user_id=user_id,
                session_id=session_id,
                assistant_message_id=assistant_message.id,
                content_length=len(content),
            )

            await self._maybe_generate_title(user_id, session, history, content)

        await channel.send(StreamChunk.done_chunk(assistant_message.id))

    async def complete_message(
        self, user_id: str, session_id: str, content: str
    ) -> tuple[StoredMessage, StoredMessage]:
        """Buffered turn: persist the user message, run the loop, persist the reply."""

        async with self._lock_for(session_id):
            session = await self._store.get_session(user_id, session_id)
            user_message = await self._store.add_message(user_id, session_id, content, "user")
            history = trim_history(await self._store.get_messages(user_id, session_id))

            result = await self._completion.run(
                to_chat_messages(history), AuthContext(user_id=user_id)
            )
            assistant_message = await self._store.add_message(
                user_id,
                session_id,
                result.content,
                "assistant",
                merge_structured_content(result.structured_content, result.meta),
                result.widget_id,
            )
            logger.info(
                "chat_completion_saved",
                user_id=user_id,
                session_id=session_id,
                assistant_message_id=assistant_message.id,
            )

            await self._maybe_generate_title(user_id, session, history, result.content)

        return user_message, assistant_message

    async def _maybe_generate_title(
        self,
        user_id: str,
        session: ChatSession,
        history: Sequence[StoredMessage],
        reply: str,
    ) -> None:
        if len(history) != TITLE_HISTORY_LENGTH:
            return
        if session.name != self._settings.default_session_name:
            return

        transcript = [ChatMessage(role="system", content=_TITLE_PROMPT)]
        transcript.extend(to_chat_messages(history))
        transcript.append(ChatMessage(role="assistant", content=reply))

        try:
            response = await self._title_client.chat_completion(
                transcript, temperature=self._settings.llm_temperature
            )
            choices = response.get("choices") or [{}]
            title = ((choices[0].get("message") or {}).get("content") or "").strip()
            if title:
                await self._store.rename_session(user_id, session.id, title)
                logger.info("session_title_generated", session_id=session.id, title=title)
        except Exception:  # noqa: BLE001
            logger.exception("session_title_failed", session_id=session.id)
