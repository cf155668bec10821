"""Pydantic schemas for LLM chat messages and streamed chunks."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

RoleLiteral = Literal["system", "user", "assistant", "tool"]
ChunkTypeLiteral = Literal["content", "tool_call", "tool_result", "metadata", "done"]


class ToolCallRef(BaseModel):
    """A tool call requested by the model; `arguments` is raw (possibly partial) JSON text."""

    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_openai(cls, payload: dict[str, Any]) -> "ToolCallRef":
        function = payload.get("function") or {}
        return cls(
            id=payload.get("id") or "",
            name=function.get("name") or "",
            arguments=function.get("arguments") or "",
        )


class ChatMessage(BaseModel):
    role: RoleLiteral
    content: str
    name: str | None = None
    tool_call_id: str | None = Field(None, description="Tool call identifier for tool messages")
    tool_calls: list[ToolCallRef] | None = Field(
        default=None, description="Assistant-emitted tool calls"
    )

    @model_validator(mode="after")
    def ensure_tool_call_id(self) -> "ChatMessage":
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("tool messages must reference a tool_call_id")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Render the message in the chat-completions wire format."""

        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        if self.name:
            payload["name"] = self.name
        return payload


class ChunkMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meta: dict[str, Any] | None = Field(None, alias="_meta")
    structured_content: dict[str, Any] | None = Field(None, alias="structuredContent")
    widget_id: str | None = Field(None, alias="widgetId")


class StreamChunk(BaseModel):
    """One element of the ordered chunk sequence a streamed run emits."""

    model_config = ConfigDict(populate_by_name=True)

    type: ChunkTypeLiteral
    content: str | None = None
    tool_calls: list[ToolCallRef] | None = Field(None, alias="toolCalls")
    metadata: ChunkMetadata | None = None
    assistant_message_id: str | None = Field(None, alias="assistantMessageId")

    @classmethod
    def content_chunk(cls, text: str) -> "StreamChunk":
        return cls(type="content", content=text)

    @classmethod
    def tool_call_chunk(cls, calls: list[ToolCallRef]) -> "StreamChunk":
        return cls(type="tool_call", tool_calls=[call.model_copy() for call in calls])

    @classmethod
    def tool_result_chunk(cls, text: str) -> "StreamChunk":
        return cls(type="tool_result", content=text)

    @classmethod
    def metadata_chunk(
        cls,
        meta: dict[str, Any] | None,
        structured_content: dict[str, Any] | None,
        widget_id: str | None,
    ) -> "StreamChunk":
        return cls(
            type="metadata",
            metadata=ChunkMetadata(
                meta=meta, structured_content=structured_content, widget_id=widget_id
            ),
        )

    @classmethod
    def done_chunk(cls, assistant_message_id: str | None = None) -> "StreamChunk":
        return cls(type="done", assistant_message_id=assistant_message_id)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CompletionResult(BaseModel):
    """Outcome of a buffered run; `messages` is the full transcript."""

    content: str
    meta: dict[str, Any] | None = None
    structured_content: dict[str, Any] | None = None
    widget_id: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
