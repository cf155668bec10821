"""Pydantic schemas for persisted chat sessions and messages and their endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

StoredRoleLiteral = Literal["system", "user", "assistant"]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class ChatSession(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    user_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class StoredMessage(BaseModel):
    id: str = Field(default_factory=_new_id)
    content: str
    role: StoredRoleLiteral
    session_id: str
    user_id: str
    structured_content: dict[str, Any] | None = None
    widget_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class CreateSessionRequest(BaseModel):
    name: str = Field(..., min_length=1)


class AddMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1)
    role: StoredRoleLiteral = "user"
    structured_content: dict[str, Any] | None = Field(None, alias="structuredContent")
    widget_id: str | None = Field(None, alias="widgetId")


class DeleteMessagesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_ids: list[str] = Field(..., alias="messageIds")


class CompleteMessageRequest(BaseModel):
    content: str = Field(..., min_length=1)


class CompleteMessageResponse(BaseModel):
    user_message: StoredMessage
    assistant_message: StoredMessage


class SuccessResponse(BaseModel):
    success: bool = True
    deleted: int | None = None
