"""Bookkeeping shared by the buffered and streamed tool-calling loops."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ...core.logging_config import get_logger
from ...core.types import AuthContext
from ...mcp.registry import ToolRegistry
from ..schemas.chat import ChatMessage, CompletionResult, ToolCallRef
from ..schemas.tools import ToolResult, render_tool_text
from .tool_executor import ToolExecutor

logger = get_logger(__name__)

MAX_TOOL_ITERATIONS = 10


@dataclass
class LoopState:
    """Per-run state: the growing transcript and the sticky result fields."""

    messages: list[ChatMessage]
    iteration: int = 0
    final_meta: dict[str, Any] | None = None
    final_structured_content: dict[str, Any] | None = None
    final_widget_id: str | None = None
    tool_calls_executed: int = field(default=0)

    def capture(self, result: ToolResult) -> None:
        """Keep the first non-empty value of each sticky field; later ones are ignored."""

        if result.meta and self.final_meta is None:
            self.final_meta = dict(result.meta)
        if result.structured_content and self.final_structured_content is None:
            self.final_structured_content = dict(result.structured_content)
        widget_id = result.resolved_widget_id()
        if widget_id and self.final_widget_id is None:
            self.final_widget_id = widget_id

    def has_metadata(self) -> bool:
        return bool(self.final_meta or self.final_structured_content or self.final_widget_id)

    def record_tool_calls(self, content: str, calls: list[ToolCallRef]) -> list[ToolCallRef]:
        """Append the assistant turn that requested `calls`, filling in missing ids."""

        resolved = [
            call if call.id else call.model_copy(update={"id": f"call_{self.iteration}_{index}"})
            for index, call in enumerate(calls)
        ]
        self.messages.append(ChatMessage(role="assistant", content=content, tool_calls=resolved))
        return resolved

    def result(self, content: str) -> CompletionResult:
        return CompletionResult(
            content=content,
            meta=self.final_meta,
            structured_content=self.final_structured_content,
            widget_id=self.final_widget_id,
            messages=list(self.messages),
        )

    def record_tool_message(self, call: ToolCallRef, text: str) -> None:
        self.tool_calls_executed += 1
        self.messages.append(
            ChatMessage(role="tool", content=text, tool_call_id=call.id, name=call.name)
        )


async def execute_tool_call(
    state: LoopState,
    call: ToolCallRef,
    registry: ToolRegistry,
    executor: ToolExecutor,
    auth: AuthContext,
) -> str:
    """Execute one requested call, capture sticky fields and return the tool message text.

    An unknown tool name yields `{"error": "Tool <name> not found"}` without
    running anything.
    """

    descriptor = registry.get(call.name)
    if descriptor is None:
        logger.error("tool_not_found", tool=call.name, tool_call_id=call.id, iteration=state.iteration)
        return json.dumps({"error": f"Tool {call.name} not found"}, ensure_ascii=False)

    result = await executor.execute(descriptor, call.arguments, auth)
    state.capture(result)
    return render_tool_text(result)
