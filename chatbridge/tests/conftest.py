"""Shared fixtures."""

from __future__ import annotations

from datetime import date

import pytest

from chatbridge.core.config import ChatBridgeSettings
from chatbridge.llm.services.conversation_store import ConversationStore
from chatbridge.llm.services.todo_store import TodoStore
from chatbridge.llm.services.tool_executor import ToolExecutor
from chatbridge.mcp.registry import ToolRegistry
from chatbridge.mcp.tools import default_tools


class Calendar:
    """Settable `today` source for the todo store."""

    def __init__(self, day: date) -> None:
        self.day = day

    def __call__(self) -> date:
        return self.day


@pytest.fixture
def settings() -> ChatBridgeSettings:
    return ChatBridgeSettings(
        _env_file=None,
        jwt_secret="chatbridge-test-secret-0123456789abcdef",
        widget_base_url="http://widgets.test",
    )


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def calendar() -> Calendar:
    return Calendar(date(2024, 3, 4))


@pytest.fixture
def todos(calendar) -> TodoStore:
    return TodoStore(today=calendar)


@pytest.fixture
def registry(store, todos, settings) -> ToolRegistry:
    return ToolRegistry(default_tools(store, todos, settings))


@pytest.fixture
def executor() -> ToolExecutor:
    return ToolExecutor()
