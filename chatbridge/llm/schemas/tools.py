"""Pydantic schemas for tool handler results."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent] | dict[str, Any] | str = Field(default_factory=list)
    structured_content: dict[str, Any] | None = Field(None, alias="structuredContent")
    widget_id: str | None = Field(None, alias="widgetId")
    meta: dict[str, Any] | None = Field(None, alias="_meta")
    is_error: bool = Field(False, alias="isError")

    @classmethod
    def text(cls, text: str, **kwargs: Any) -> "ToolResult":
        return cls(content=[TextContent(text=text)], **kwargs)

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(
            content=[TextContent(text=json.dumps({"error": message}, ensure_ascii=False))],
            is_error=True,
        )

    def resolved_widget_id(self) -> str | None:
        """Explicit widget id, else the widget path advertised in `_meta`."""

        if self.widget_id:
            return self.widget_id
        path = (self.meta or {}).get("path")
        return path if isinstance(path, str) and path else None


def render_tool_text(result: ToolResult) -> str:
    """Flatten a result into the text handed back to the model."""

    if isinstance(result.content, list):
        return "\n".join(item.text for item in result.content)
    return json.dumps(result.content, ensure_ascii=False)
