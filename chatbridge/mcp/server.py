"""FastMCP server exposing the tool registry and widget templates to the chat host."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.auth.providers.jwt import JWTVerifier
from fastmcp.server.dependencies import get_access_token
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult as MCPToolResult
from mcp.types import TextContent as MCPTextContent
from pydantic import PrivateAttr

from ..core.config import ChatBridgeSettings
from ..core.exceptions import ConfigurationError
from ..core.http_client import fetch_text
from ..core.logging_config import get_logger
from ..core.types import AuthContext
from ..llm.schemas.tools import render_tool_text
from ..llm.services.tool_executor import ToolExecutor
from .registry import ToolDescriptor, ToolRegistry
from .widgets import WIDGET_MIME_TYPE, WIDGETS, ContentWidget

logger = get_logger(__name__)

SERVER_NAME = "chatbridge"


class RegistryTool(Tool):
    """MCP view of a registry descriptor; calls go through the shared executor."""

    _descriptor: ToolDescriptor = PrivateAttr()
    _executor: ToolExecutor = PrivateAttr()

    @classmethod
    def from_descriptor(cls, descriptor: ToolDescriptor, executor: ToolExecutor) -> "RegistryTool":
        tool = cls(
            name=descriptor.name,
            title=descriptor.title,
            description=descriptor.description,
            parameters=descriptor.input_schema(),
            meta=dict(descriptor.metadata) or None,
        )
        tool._descriptor = descriptor
        tool._executor = executor
        return tool

    async def run(self, arguments: dict[str, Any]) -> MCPToolResult:
        auth = resolve_mcp_auth_context()
        logger.debug("mcp_tool_call", tool=self.name, user_id=auth.user_id)
        result = await self._executor.execute(self._descriptor, arguments, auth)
        text = render_tool_text(result)
        if result.is_error:
            raise ToolError(text)
        return MCPToolResult(
            content=[MCPTextContent(type="text", text=text)],
            structured_content=result.structured_content,
            meta=result.meta,
        )


def resolve_mcp_auth_context() -> AuthContext:
    """Auth context of the current MCP request; anonymous outside a verified request."""

    try:
        access_token = get_access_token()
    except RuntimeError:
        access_token = None
    if access_token is None:
        return AuthContext(user_id=None)

    claims = dict(access_token.claims or {})
    user_id = claims.get("userId") or claims.get("sub") or access_token.client_id
    return AuthContext(user_id=str(user_id) if user_id else None, token=access_token.token, extra=claims)


def _build_auth(settings: ChatBridgeSettings) -> JWTVerifier | None:
    if settings.mcp_jwks_uri is None:
        return None
    return JWTVerifier(
        jwks_uri=str(settings.mcp_jwks_uri),
        issuer=settings.mcp_issuer,
        audience=settings.mcp_audience,
    )


def _register_widget(server: FastMCP, widget: ContentWidget, settings: ChatBridgeSettings) -> None:
    @server.resource(
        widget.template_uri,
        name=widget.id,
        description=widget.description,
        mime_type=WIDGET_MIME_TYPE,
    )
    async def widget_template() -> str:
        if settings.widget_base_url is None:
            raise ConfigurationError("WIDGET_BASE_URL is not configured")
        html = await fetch_text(str(settings.widget_base_url), widget.path)
        logger.info("widget_template_fetched", widget=widget.id, bytes=len(html))
        return f"<html>{html}</html>"


def build_mcp_server(
    registry: ToolRegistry, executor: ToolExecutor, settings: ChatBridgeSettings
) -> FastMCP:
    """FastMCP server with one tool per descriptor and one resource per widget."""

    server = FastMCP(SERVER_NAME, auth=_build_auth(settings))
    for descriptor in registry.tools:
        server.add_tool(RegistryTool.from_descriptor(descriptor, executor))
    for widget in WIDGETS:
        _register_widget(server, widget, settings)

    logger.info(
        "mcp_server_ready",
        tools=len(registry),
        widgets=len(WIDGETS),
        auth="jwt" if settings.mcp_jwks_uri else "none",
    )
    return server
