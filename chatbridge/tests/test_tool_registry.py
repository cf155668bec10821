import pytest
from pydantic import BaseModel

from chatbridge.core.auth import verify_user_token
from chatbridge.core.exceptions import AuthenticationError
from chatbridge.core.types import AuthContext
from chatbridge.llm.schemas.tools import ToolResult
from chatbridge.mcp.registry import ToolDescriptor, ToolRegistry
from chatbridge.mcp.tools import ADD_TOOL
from chatbridge.mcp.tools.arithmetic import AddInput, add
from chatbridge.mcp.widgets import SESSION_LIST_WIDGET, widget_meta

from .fakes import BUILTIN_TOOL_NAMES


async def _noop(args, auth):
    return ToolResult.text("ok")


class _Inner(BaseModel):
    value: int


class _Outer(BaseModel):
    inner: _Inner


def test_registry_rejects_duplicate_names():
    descriptor = ToolDescriptor(name="dup", description="", handler=_noop)

    with pytest.raises(ValueError, match="Duplicate tool name: dup"):
        ToolRegistry([descriptor, descriptor])


def test_registry_exposes_tools_in_order(registry):
    assert [tool.name for tool in registry.tools] == BUILTIN_TOOL_NAMES
    assert "add" in registry
    assert registry.get("missing") is None
    assert len(registry) == len(BUILTIN_TOOL_NAMES)

    schema = registry.openai_tools()[0]
    assert schema["type"] == "function"
    assert schema["function"]["name"] == "add"
    assert schema["function"]["parameters"]["required"] == ["a", "b"]


def test_input_schema_inlines_nested_models():
    descriptor = ToolDescriptor(name="nested", description="", handler=_noop, input_model=_Outer)

    schema = descriptor.input_schema()

    assert "$defs" not in schema
    assert schema["properties"]["inner"]["properties"]["value"]["type"] == "integer"


@pytest.mark.asyncio
async def test_add_returns_plain_sum_text():
    result = await add(AddInput(a=1, b=2), AuthContext(user_id=None))

    assert result.content[0].text == "3"
    assert ADD_TOOL.handler is add


@pytest.mark.asyncio
async def test_add_keeps_fractional_sums():
    result = await add(AddInput(a=0.5, b=0.25), AuthContext(user_id=None))

    assert result.content[0].text == "0.75"


def test_widget_meta_without_auth_has_template_keys_only():
    meta = widget_meta(SESSION_LIST_WIDGET)

    assert meta["openai/outputTemplate"] == "ui://widget/session-list.html"
    assert meta["path"] == "/sessions"
    assert "userJwt" not in meta
    assert "authInfo" not in meta


def test_widget_meta_with_auth_carries_user_credential(settings):
    meta = widget_meta(SESSION_LIST_WIDGET, AuthContext(user_id="user-7", token="tok"), settings)

    assert verify_user_token(meta["userJwt"], settings) == "user-7"
    assert meta["authInfo"]["extra"]["userId"] == "user-7"


@pytest.mark.asyncio
async def test_list_chat_sessions_returns_widget_payload(registry, store, settings):
    session = await store.create_session("user-1", "Trip planning")
    descriptor = registry.get("list_chat_sessions")

    result = await descriptor.handler(
        descriptor.input_model(), AuthContext(user_id="user-1", token="tok")
    )

    assert result.content[0].text.startswith("Found 1 chat session(s):")
    assert result.structured_content["sessions"][0]["id"] == session.id
    assert result.resolved_widget_id() == "/sessions"
    assert verify_user_token(result.meta["userJwt"], settings) == "user-1"


@pytest.mark.asyncio
async def test_list_chat_sessions_requires_user(registry):
    descriptor = registry.get("list_chat_sessions")

    with pytest.raises(AuthenticationError):
        await descriptor.handler(descriptor.input_model(), AuthContext(user_id=None))
