"""Application services container and FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from fastapi import Depends, Header, Request

from ..core.auth import extract_bearer_token, verify_user_token
from ..core.config import ChatBridgeSettings
from ..core.exceptions import ConfigurationError
from ..core.logging_config import get_logger
from ..mcp.registry import ToolRegistry
from ..mcp.tools import default_tools
from .services.completion_driver import CompletionDriver
from .services.conversation_service import ConversationService
from .services.conversation_store import ConversationStore
from .services.llm_client import LLMClient, build_llm_clients
from .services.streaming_driver import StreamingDriver
from .services.todo_store import TodoStore
from .services.tool_executor import ToolExecutor
from .services.transcription import TranscriptionService

logger = get_logger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    settings: ChatBridgeSettings
    store: ConversationStore
    todos: TodoStore
    registry: ToolRegistry
    executor: ToolExecutor
    llm_clients: Mapping[str, LLMClient]
    conversation: ConversationService
    transcription: TranscriptionService


def _client_for(clients: Mapping[str, LLMClient], provider: str) -> LLMClient:
    try:
        return clients[provider]
    except KeyError as exc:
        raise ConfigurationError(f"No LLM client configured for provider '{provider}'") from exc


def build_container(
    settings: ChatBridgeSettings,
    *,
    llm_clients: Mapping[str, LLMClient] | None = None,
    store: ConversationStore | None = None,
    todos: TodoStore | None = None,
) -> ServiceContainer:
    """Wire the store, registry, drivers and conversation service together."""

    store = store or ConversationStore()
    todos = todos or TodoStore()
    clients = dict(llm_clients) if llm_clients is not None else build_llm_clients(settings)
    registry = ToolRegistry(default_tools(store, todos, settings))
    executor = ToolExecutor()

    streaming = StreamingDriver(
        _client_for(clients, settings.stream_provider),
        registry,
        executor,
        temperature=settings.llm_temperature,
    )
    completion_client = _client_for(clients, settings.completion_provider)
    completion = CompletionDriver(
        completion_client,
        registry,
        executor,
        temperature=settings.llm_temperature,
    )
    conversation = ConversationService(store, streaming, completion, completion_client, settings)

    logger.info(
        "service_container_ready",
        providers=sorted(clients),
        stream_provider=settings.stream_provider,
        completion_provider=settings.completion_provider,
        tools=len(registry),
    )
    return ServiceContainer(
        settings=settings,
        store=store,
        todos=todos,
        registry=registry,
        executor=executor,
        llm_clients=clients,
        conversation=conversation,
        transcription=TranscriptionService(settings),
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_conversation_service(
    container: ServiceContainer = Depends(get_container),
) -> ConversationService:
    return container.conversation


def get_todo_store(container: ServiceContainer = Depends(get_container)) -> TodoStore:
    return container.todos


def get_transcription_service(
    container: ServiceContainer = Depends(get_container),
) -> TranscriptionService:
    return container.transcription


def get_current_user_id(
    authorization: str | None = Header(None),
    container: ServiceContainer = Depends(get_container),
) -> str:
    """Resolve the caller from `Authorization: Bearer|CustomBearer <jwt>`."""

    token = extract_bearer_token(authorization)
    return verify_user_token(token, container.settings)
