"""Static table of tools the model (and the MCP host) may call."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ..core.logging_config import get_logger
from ..core.types import AuthContext
from ..llm.schemas.tools import ToolResult

logger = get_logger(__name__)

ToolHandler = Callable[[Any, AuthContext], Awaitable[ToolResult | Mapping[str, Any]]]


class NoArguments(BaseModel):
    """Input model for tools that take no parameters."""


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    name: str
    description: str
    handler: ToolHandler
    input_model: type[BaseModel] = NoArguments
    title: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the input model with `$ref`s inlined."""

        schema = self.input_model.model_json_schema()
        definitions = schema.pop("$defs", {})
        schema = _inline_refs(schema, definitions)
        schema.pop("title", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema(),
            },
        }


class ToolRegistry:
    """Immutable, ordered set of tool descriptors keyed by unique name."""

    def __init__(self, descriptors: Iterable[ToolDescriptor] = ()) -> None:
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            tools[descriptor.name] = descriptor
        self._tools = tools
        self._openai_tools = [descriptor.openai_tool() for descriptor in tools.values()]
        logger.info("tool_registry_loaded", count=len(tools), tools=list(tools))

    @property
    def tools(self) -> tuple[ToolDescriptor, ...]:
        return tuple(self._tools.values())

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def openai_tools(self) -> list[dict[str, Any]]:
        """Function-tool schema list for chat-completion requests."""

        return list(self._openai_tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _inline_refs(node: Any, definitions: Mapping[str, Any]) -> Any:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            target = definitions.get(ref.rsplit("/", 1)[-1], {})
            merged = {**target, **{key: value for key, value in node.items() if key != "$ref"}}
            return _inline_refs(merged, definitions)
        return {key: _inline_refs(value, definitions) for key, value in node.items()}
    if isinstance(node, list):
        return [_inline_refs(item, definitions) for item in node]
    return node
