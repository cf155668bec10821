"""Service layer exports."""

from .completion_driver import CompletionDriver
from .conversation_service import ConversationService
from .conversation_store import ConversationStore
from .llm_client import LLMClient, build_llm_clients
from .streaming_driver import StreamingDriver, ToolCallAssembler
from .todo_store import TodoStore
from .tool_executor import ToolExecutor
from .transcription import TranscriptionService

__all__ = [
    "CompletionDriver",
    "ConversationService",
    "ConversationStore",
    "LLMClient",
    "StreamingDriver",
    "TodoStore",
    "ToolCallAssembler",
    "ToolExecutor",
    "TranscriptionService",
    "build_llm_clients",
]
