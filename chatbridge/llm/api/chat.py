"""Chat session endpoints backed by the conversation service."""

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...core.logging_config import get_logger
from ..dependencies import get_conversation_service, get_current_user_id
from ..schemas.session import (
    AddMessageRequest,
    ChatSession,
    CompleteMessageRequest,
    CompleteMessageResponse,
    CreateSessionRequest,
    DeleteMessagesRequest,
    StoredMessage,
    SuccessResponse,
)
from ..services.conversation_service import ConversationService

router = APIRouter(prefix="/chat", tags=["chat"])
logger = get_logger(__name__)


@router.post("/sessions", response_model=ChatSession)
async def create_session(
    request: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> ChatSession:
    return await service.create_session(user_id, request.name)


@router.get("/sessions", response_model=list[ChatSession])
async def list_sessions(
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> list[ChatSession]:
    return await service.store.list_sessions(user_id)


@router.get("/sessions/{session_id}/messages", response_model=list[StoredMessage])
async def get_session_messages(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> list[StoredMessage]:
    return await service.store.get_messages(user_id, session_id)


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> SuccessResponse:
    await service.delete_session(user_id, session_id)
    return SuccessResponse()


@router.post("/messages/delete", response_model=SuccessResponse)
async def delete_messages(
    request: DeleteMessagesRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> SuccessResponse:
    deleted = await service.store.delete_messages(user_id, request.message_ids)
    return SuccessResponse(deleted=deleted)


@router.post("/sessions/{session_id}/messages", response_model=StoredMessage)
async def add_message(
    session_id: str,
    request: AddMessageRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> StoredMessage:
    return await service.add_user_message(
        user_id,
        session_id,
        request.content,
        request.role,
        request.structured_content,
        request.widget_id,
    )


@router.post("/sessions/{session_id}/complete", response_model=CompleteMessageResponse)
async def complete_message(
    session_id: str,
    request: CompleteMessageRequest,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> CompleteMessageResponse:
    user_message, assistant_message = await service.complete_message(
        user_id, session_id, request.content
    )
    return CompleteMessageResponse(user_message=user_message, assistant_message=assistant_message)


@router.get("/messages/{message_id}/stream")
async def stream_message(
    message_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
) -> StreamingResponse:
    """Stream the reply to a persisted message as Server-Sent Events.

    Each chunk is one `data:` line of JSON. A failed run ends the stream with
    an `event: error` frame instead of a `done` chunk.
    """

    await service.store.get_message(user_id, message_id)
    return StreamingResponse(
        _sse_frames(service, user_id, message_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _sse_frames(
    service: ConversationService, user_id: str, message_id: str
) -> AsyncIterator[str]:
    # Spawned on first iteration; a body that never starts leaves no run behind.
    channel = service.stream_message(user_id, message_id)
    try:
        async for chunk in channel:
            yield f"data: {json.dumps(chunk.to_wire(), ensure_ascii=False)}\n\n"
    except Exception as exc:
        logger.warning("chat_sse_failed", message_id=message_id, error=str(exc))
        payload = json.dumps({"error": str(exc)}, ensure_ascii=False)
        yield f"event: error\ndata: {payload}\n\n"
    finally:
        await channel.aclose()
