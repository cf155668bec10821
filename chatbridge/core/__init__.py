"""Core infrastructure utilities."""

from .config import ChatBridgeSettings, get_settings
from .logging_config import configure_logging, get_logger
from .types import AuthContext

__all__ = [
    "AuthContext",
    "ChatBridgeSettings",
    "configure_logging",
    "get_logger",
    "get_settings",
]
