"""Widget descriptors and the host metadata that binds tool results to them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.auth import issue_user_token
from ..core.config import ChatBridgeSettings
from ..core.types import AuthContext

WIDGET_MIME_TYPE = "text/html+skybridge"


@dataclass(frozen=True, slots=True)
class ContentWidget:
    id: str
    title: str
    template_uri: str
    invoking: str
    invoked: str
    path: str
    description: str
    widget_domain: str


def widget_meta(
    widget: ContentWidget,
    auth: AuthContext | None = None,
    settings: ChatBridgeSettings | None = None,
) -> dict[str, Any]:
    """Metadata bag telling the chat host which template renders a result.

    When an authenticated context and a JWT secret are available the bag also
    carries `userJwt`, a short-lived credential the widget uses to call back
    into the API on the user's behalf.
    """

    meta: dict[str, Any] = {
        "openai/outputTemplate": widget.template_uri,
        "openai/toolInvocation/invoking": widget.invoking,
        "openai/toolInvocation/invoked": widget.invoked,
        "openai/widgetAccessible": False,
        "openai/resultCanProduceWidget": True,
        "path": widget.path,
    }
    if auth is not None:
        meta["authInfo"] = auth.as_auth_info()
        if auth.user_id and settings is not None and settings.jwt_secret is not None:
            meta["userJwt"] = issue_user_token(auth.user_id, settings)
    return meta


SESSION_LIST_WIDGET = ContentWidget(
    id="session_list",
    title="Chat sessions",
    template_uri="ui://widget/session-list.html",
    invoking="Loading chat sessions...",
    invoked="Chat sessions ready",
    path="/sessions",
    description="Browse and reopen your previous chat sessions",
    widget_domain="https://platform.openai.com",
)

TODO_WIDGET = ContentWidget(
    id="todo_widget",
    title="Todo List",
    template_uri="ui://widget/todo-template.html",
    invoking="Loading todo list...",
    invoked="Todo list ready",
    path="/todos",
    description="Manage your daily todos and standup",
    widget_domain="https://platform.openai.com",
)

WIDGETS: tuple[ContentWidget, ...] = (SESSION_LIST_WIDGET, TODO_WIDGET)
