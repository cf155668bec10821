"""Tools exposing the caller's chat sessions."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ...core.config import ChatBridgeSettings
from ...core.exceptions import AuthenticationError
from ...core.types import AuthContext
from ...llm.schemas.tools import ToolResult
from ...llm.services.conversation_store import ConversationStore
from ..registry import ToolDescriptor
from ..widgets import SESSION_LIST_WIDGET, widget_meta


class ListSessionsInput(BaseModel):
    limit: int = Field(20, ge=1, le=100, description="Maximum number of sessions to return")


def build_session_tools(
    store: ConversationStore, settings: ChatBridgeSettings
) -> list[ToolDescriptor]:
    async def list_chat_sessions(args: ListSessionsInput, auth: AuthContext) -> ToolResult:
        if not auth.user_id:
            raise AuthenticationError("Listing sessions requires an authenticated user")

        sessions = (await store.list_sessions(auth.user_id))[: args.limit]
        if sessions:
            lines = [f"- {session.name} (id: {session.id})" for session in sessions]
            text = f"Found {len(sessions)} chat session(s):\n" + "\n".join(lines)
        else:
            text = "No chat sessions yet."

        return ToolResult.text(
            text,
            structured_content={
                "sessions": [
                    {
                        "id": session.id,
                        "name": session.name,
                        "updatedAt": session.updated_at.isoformat(),
                    }
                    for session in sessions
                ]
            },
            meta=widget_meta(SESSION_LIST_WIDGET, auth, settings),
        )

    return [
        ToolDescriptor(
            name="list_chat_sessions",
            title="List chat sessions",
            description=(
                "List the current user's chat sessions, most recently active first, "
                "and show them in the session list widget."
            ),
            input_model=ListSessionsInput,
            handler=list_chat_sessions,
            metadata=widget_meta(SESSION_LIST_WIDGET),
        )
    ]
