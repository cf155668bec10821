"""Buffered tool-calling loop over non-streaming chat completions."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ...core.exceptions import ExternalServiceError, MaxIterationsExceeded
from ...core.logging_config import get_logger
from ...core.types import AuthContext
from ...mcp.registry import ToolRegistry
from ..schemas.chat import ChatMessage, CompletionResult, ToolCallRef
from .llm_client import LLMClient
from .tool_executor import ToolExecutor
from .tool_loop import MAX_TOOL_ITERATIONS, LoopState, execute_tool_call

logger = get_logger(__name__)


class CompletionDriver:
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

    async def run(self, messages: Iterable[ChatMessage], auth: AuthContext) -> CompletionResult:
        """Loop until the model answers without tool calls, executing tools between rounds.

        Raises MaxIterationsExceeded when the model is still requesting tools
        after `MAX_TOOL_ITERATIONS` rounds; no partial result is returned.
        """

        state = LoopState(messages=list(messages))
        tools = self._registry.openai_tools()

        for iteration in range(1, MAX_TOOL_ITERATIONS + 1):
            state.iteration = iteration
            logger.info("llm_iteration", mode="completion", iteration=iteration, user_id=auth.user_id)

            response = await self._llm.chat_completion(
                state.messages,
                tools=tools,
                tool_choice="auto",
                temperature=self._temperature,
            )
            message = _first_message(response)
            content = message.get("content") or ""
            calls = [
                ToolCallRef.from_openai(call)
                for call in message.get("tool_calls") or []
                if call.get("type", "function") == "function"
            ]

            if not calls:
                state.messages.append(ChatMessage(role="assistant", content=content))
                logger.info(
                    "llm_run_completed",
                    mode="completion",
                    iterations=iteration,
                    tool_calls=state.tool_calls_executed,
                )
                return state.result(content)

            logger.info(
                "tool_calls_detected",
                mode="completion",
                iteration=iteration,
                tools=[call.name for call in calls],
            )
            for call in state.record_tool_calls(content, calls):
                text = await execute_tool_call(state, call, self._registry, self._executor, auth)
                state.record_tool_message(call, text)

        logger.warning("tool_loop_maxed", mode="completion", max_iterations=MAX_TOOL_ITERATIONS)
        raise MaxIterationsExceeded(MAX_TOOL_ITERATIONS)


def _first_message(response: dict[str, Any]) -> dict[str, Any]:
    choices = response.get("choices") or []
    message = (choices[0] or {}).get("message") if choices else None
    if not message:
        raise ExternalServiceError("No message in LLM response")
    return message
