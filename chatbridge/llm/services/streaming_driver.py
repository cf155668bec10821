"""Streamed tool-calling loop: token deltas out, tool rounds in between."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import aclosing
from typing import Any

from ...core.channel import ChunkChannel
from ...core.exceptions import MaxIterationsExceeded
from ...core.logging_config import get_logger
from ...core.types import AuthContext
from ...mcp.registry import ToolRegistry
from ..schemas.chat import ChatMessage, CompletionResult, StreamChunk, ToolCallRef
from .llm_client import LLMClient
from .tool_executor import ToolExecutor
from .tool_loop import MAX_TOOL_ITERATIONS, LoopState, execute_tool_call

logger = get_logger(__name__)


class ToolCallAssembler:
    """Rebuild tool calls from streamed fragments.

    Each fragment carries the zero-based `index` of the call it belongs to.
    `id` and `name` overwrite when present; `arguments` is always appended,
    since providers stream the JSON text piece by piece.
    """

    def __init__(self) -> None:
        self._calls: list[ToolCallRef] = []

    def feed(self, deltas: Iterable[dict[str, Any]]) -> None:
        for delta in deltas:
            index = delta.get("index")
            if index is None:
                continue
            while index >= len(self._calls):
                self._calls.append(ToolCallRef())

            call = self._calls[index]
            function = delta.get("function") or {}
            if delta.get("id"):
                call.id = delta["id"]
            if function.get("name"):
                call.name = function["name"]
            if function.get("arguments"):
                call.arguments += function["arguments"]

    def calls(self) -> list[ToolCallRef]:
        """Snapshot of the assembled calls, skipping slots that never received data."""

        return [call.model_copy() for call in self._calls if call.id or call.name or call.arguments]

    def __len__(self) -> int:
        return len(self._calls)


class StreamingDriver:
    def __init__(
        self,
        llm_client: LLMClient,
        registry: ToolRegistry,
        executor: ToolExecutor,
        *,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm_client
        self._registry = registry
        self._executor = executor
        self._temperature = temperature

    def stream(
        self,
        messages: Iterable[ChatMessage],
        auth: AuthContext,
        *,
        maxsize: int = 64,
    ) -> ChunkChannel[StreamChunk]:
        """Start a run in the background and return the channel it emits into."""

        history = list(messages)
        channel: ChunkChannel[StreamChunk] = ChunkChannel(maxsize=maxsize)

        async def produce(target: ChunkChannel[StreamChunk]) -> None:
            await self.run(history, auth, target)

        channel.spawn(produce)
        return channel

    async def run(
        self,
        messages: Iterable[ChatMessage],
        auth: AuthContext,
        channel: ChunkChannel[StreamChunk],
    ) -> CompletionResult:
        """Emit `content` deltas as they arrive, then per round either `tool_call` +
        `tool_result`s or, once the model stops calling tools, `metadata` (if any
        sticky field is set) and `done`.
        """

        state = LoopState(messages=list(messages))
        tools = self._registry.openai_tools()

        for iteration in range(1, MAX_TOOL_ITERATIONS + 1):
            state.iteration = iteration
            logger.info("llm_iteration", mode="stream", iteration=iteration, user_id=auth.user_id)

            content, calls = await self._stream_round(state, tools, channel)

            if not calls:
                state.messages.append(ChatMessage(role="assistant", content=content))
                if state.has_metadata():
                    await channel.send(
                        StreamChunk.metadata_chunk(
                            state.final_meta,
                            state.final_structured_content,
                            state.final_widget_id,
                        )
                    )
                await channel.send(StreamChunk.done_chunk())
                logger.info(
                    "llm_run_completed",
                    mode="stream",
                    iterations=iteration,
                    tool_calls=state.tool_calls_executed,
                )
                return state.result(content)

            logger.info(
                "tool_calls_detected",
                mode="stream",
                iteration=iteration,
                tools=[call.name for call in calls],
            )
            resolved = state.record_tool_calls(content, calls)
            await channel.send(StreamChunk.tool_call_chunk(resolved))
            for call in resolved:
                text = await execute_tool_call(state, call, self._registry, self._executor, auth)
                await channel.send(StreamChunk.tool_result_chunk(text))
                state.record_tool_message(call, text)

        logger.warning("tool_loop_maxed", mode="stream", max_iterations=MAX_TOOL_ITERATIONS)
        raise MaxIterationsExceeded(MAX_TOOL_ITERATIONS)

    async def _stream_round(
        self,
        state: LoopState,
        tools: list[dict[str, Any]],
        channel: ChunkChannel[StreamChunk],
    ) -> tuple[str, list[ToolCallRef]]:
        assembler = ToolCallAssembler()
        content_parts: list[str] = []

        events = self._llm.stream_chat_completion(
            state.messages,
            tools=tools,
            tool_choice="auto",
            temperature=self._temperature,
        )
        async with aclosing(events):
            async for event in events:
                choices = event.get("choices") or []
                if not choices:
                    continue
                choice = choices[0] or {}
                delta = choice.get("delta") or {}

                if delta.get("tool_calls"):
                    assembler.feed(delta["tool_calls"])

                text = delta.get("content")
                if text:
                    content_parts.append(text)
                    await channel.send(StreamChunk.content_chunk(text))

                if choice.get("finish_reason") == "tool_calls":
                    break

        return "".join(content_parts), assembler.calls()
