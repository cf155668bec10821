"""HTTP API routers."""

from .chat import router as chat_router
from .events import router as events_router
from .health import router as health_router
from .todos import router as todos_router
from .voice import router as voice_router

__all__ = ["chat_router", "events_router", "health_router", "todos_router", "voice_router"]
