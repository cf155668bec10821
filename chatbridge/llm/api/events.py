"""WebSocket route streaming assistant replies to the browser client."""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ...core.auth import verify_user_token
from ...core.exceptions import AgentError
from ...core.logging_config import get_logger
from ..dependencies import ServiceContainer

router = APIRouter(prefix="/chat", tags=["chat"])
logger = get_logger(__name__)


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket) -> None:
    container: ServiceContainer = websocket.app.state.container
    token = websocket.query_params.get("token") or ""
    try:
        user_id = verify_user_token(token, container.settings)
    except AgentError as exc:
        logger.warning("chat_ws_rejected", error=str(exc))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("chat_ws_connected", user_id=user_id)

    try:
        while True:
            message = await websocket.receive_text()
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                logger.warning("chat_ws_unparseable", user_id=user_id, raw=message[:200])
                await websocket.send_json({"type": "error", "error": "Invalid JSON message"})
                continue

            message_type = data.get("type") if isinstance(data, dict) else None
            if message_type != "stream_message" or not data.get("message_id"):
                logger.warning("chat_ws_unknown_message", user_id=user_id, message_type=message_type)
                await websocket.send_json(
                    {"type": "error", "error": f"Unsupported message type: {message_type}"}
                )
                continue

            await _stream_reply(websocket, container, user_id, str(data["message_id"]))
    except WebSocketDisconnect:
        logger.info("chat_ws_disconnected", user_id=user_id)


async def _stream_reply(
    websocket: WebSocket, container: ServiceContainer, user_id: str, message_id: str
) -> None:
    channel = container.conversation.stream_message(user_id, message_id)
    try:
        async for chunk in channel:
            await websocket.send_json(chunk.to_wire())
    except WebSocketDisconnect:
        raise
    except Exception as exc:
        logger.warning("chat_ws_stream_failed", user_id=user_id, message_id=message_id, error=str(exc))
        await websocket.send_json({"type": "error", "error": str(exc)})
    finally:
        await channel.aclose()
