"""Built-in tool registrations grouped by domain."""

from __future__ import annotations

from ...core.config import ChatBridgeSettings
from ...llm.services.conversation_store import ConversationStore
from ...llm.services.todo_store import TodoStore
from ..registry import ToolDescriptor
from .arithmetic import ADD_TOOL
from .sessions import build_session_tools
from .todos import build_todo_tools

__all__ = ["ADD_TOOL", "build_session_tools", "build_todo_tools", "default_tools"]


def default_tools(
    store: ConversationStore, todos: TodoStore, settings: ChatBridgeSettings
) -> list[ToolDescriptor]:
    """Ordered built-in descriptors for a fresh registry."""

    return [ADD_TOOL, *build_session_tools(store, settings), *build_todo_tools(todos, settings)]
