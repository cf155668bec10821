"""FastAPI application entry point."""

from collections.abc import Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.config import ChatBridgeSettings, env_file_candidates, get_settings, resolved_env_file
from ..core.exceptions import (
    AgentError,
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    InvalidRequestError,
    MaxIterationsExceeded,
    NotFoundError,
)
from ..core.logging_config import configure_logging, get_logger
from ..mcp.server import build_mcp_server
from .api.chat import router as chat_router
from .api.events import router as events_router
from .api.health import router as health_router
from .api.todos import router as todos_router
from .api.voice import router as voice_router
from .dependencies import build_container
from .services.conversation_store import ConversationStore
from .services.llm_client import LLMClient
from .services.todo_store import TodoStore

configure_logging()
logger = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AgentError], int], ...] = (
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (MaxIterationsExceeded, status.HTTP_502_BAD_GATEWAY),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _status_for(exc: AgentError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def agent_error_handler(request: Request, exc: AgentError) -> JSONResponse:
    status_code = _status_for(exc)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "http_request_failed",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse({"detail": str(exc)}, status_code=status_code, headers=headers)


def create_app(
    settings: ChatBridgeSettings | None = None,
    *,
    llm_clients: Mapping[str, LLMClient] | None = None,
    store: ConversationStore | None = None,
    todos: TodoStore | None = None,
) -> FastAPI:
    """Build the API with its services; `llm_clients` and the stores override the defaults."""

    settings = settings or get_settings()
    container = build_container(settings, llm_clients=llm_clients, store=store, todos=todos)
    mcp_server = build_mcp_server(container.registry, container.executor, settings)
    mcp_app = mcp_server.http_app(path="/")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "chatbridge_startup",
            env=settings.app_env,
            log_level=settings.log_level,
            app_host=settings.app_host,
            app_port=settings.app_port,
            stream_provider=settings.stream_provider,
            completion_provider=settings.completion_provider,
        )
        logger.info(
            "environment_loaded",
            log_file=settings.log_file or "stdout-only",
            env_file=resolved_env_file() or "not-found",
            env_candidates=list(env_file_candidates()),
        )
        async with mcp_app.lifespan(app):
            yield
        logger.info("chatbridge_shutdown")

    app = FastAPI(
        title="ChatBridge",
        version=__version__,
        description="Tool-calling chat orchestration with an MCP surface.",
        lifespan=lifespan,
    )
    app.state.container = container
    app.add_exception_handler(AgentError, agent_error_handler)

    @app.middleware("http")
    async def log_incoming_requests(request: Request, call_next):
        logger.info(
            "http_request_received",
            method=request.method,
            path=request.url.path,
            client=str(request.client[0]) if request.client else "unknown",
        )
        response = await call_next(request)
        logger.info(
            "http_request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(events_router)
    app.include_router(todos_router)
    app.include_router(voice_router)
    app.mount("/mcp", mcp_app)

    @app.get("/")
    async def index() -> dict[str, str]:
        return {"service": "chatbridge", "status": "ok"}

    return app


app = create_app()
