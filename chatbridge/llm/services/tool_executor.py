"""Run a single tool handler and normalise its outcome into a ToolResult."""

from __future__ import annotations

import json
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ...core.logging_config import get_logger
from ...core.types import AuthContext
from ...mcp.registry import ToolDescriptor
from ..schemas.tools import ToolResult

logger = get_logger(__name__)


class ToolArgumentError(ValueError):
    """Raw tool arguments could not be decoded or failed schema validation."""


def parse_tool_arguments(descriptor: ToolDescriptor, raw_arguments: str | Mapping[str, Any] | None) -> Any:
    """Decode model-produced JSON and validate it against the tool's input model."""

    if isinstance(raw_arguments, Mapping):
        payload: Any = dict(raw_arguments)
    elif raw_arguments is None or not raw_arguments.strip():
        payload = {}
    else:
        try:
            payload = json.loads(raw_arguments)
        except json.JSONDecodeError as exc:
            raise ToolArgumentError(f"Invalid tool arguments: {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ToolArgumentError(
            f"Invalid tool arguments: expected a JSON object, got {type(payload).__name__}"
        )

    try:
        return descriptor.input_model.model_validate(payload)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ToolArgumentError(f"Invalid tool arguments: {details}") from exc


class ToolExecutor:
    """Invoke tool handlers without ever letting their failures escape."""

    async def execute(
        self,
        descriptor: ToolDescriptor,
        raw_arguments: str | Mapping[str, Any] | None,
        auth: AuthContext,
    ) -> ToolResult:
        started = time.perf_counter()
        try:
            arguments = parse_tool_arguments(descriptor, raw_arguments)
        except ToolArgumentError as exc:
            logger.warning(
                "tool_arguments_invalid",
                tool=descriptor.name,
                raw_arguments=str(raw_arguments)[:200],
                error=str(exc),
            )
            return ToolResult.error(str(exc))

        try:
            outcome = await descriptor.handler(arguments, auth)
            result = outcome if isinstance(outcome, ToolResult) else ToolResult.model_validate(outcome)
        except Exception as exc:  # noqa: BLE001 - folded into the transcript
            logger.warning(
                "tool_handler_failed",
                tool=descriptor.name,
                error_type=type(exc).__name__,
                error=str(exc),
                user_id=auth.user_id,
            )
            return ToolResult.error(f"Error executing tool: {exc}")

        logger.info(
            "tool_call_executed",
            tool=descriptor.name,
            user_id=auth.user_id,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result
