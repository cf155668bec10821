"""Custom exception hierarchy for the ChatBridge service."""


class AgentError(Exception):
    """Base exception for service-level issues."""


class ConfigurationError(AgentError):
    """Raised when configuration is invalid or missing."""


class ExternalServiceError(AgentError):
    """Raised when an external dependency responds with an error."""


class RateLimitExceeded(ExternalServiceError):
    """Raised when the upstream API reports rate limiting."""


class MaxIterationsExceeded(AgentError):
    """Raised when the tool-calling loop does not settle within its iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"Maximum tool call iterations exceeded ({max_iterations})")
        self.max_iterations = max_iterations


class NotFoundError(AgentError):
    """Raised when a user-scoped record does not exist."""


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session with ID {session_id} not found")
        self.session_id = session_id


class MessageNotFoundError(NotFoundError):
    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message with ID {message_id} not found")
        self.message_id = message_id


class AuthenticationError(AgentError):
    """Raised when a request carries no usable credential."""


class ChannelClosed(AgentError):
    """Raised on send when the consumer has closed a chunk channel."""


class TodoNotFoundError(NotFoundError):
    def __init__(self, todo_id: str) -> None:
        super().__init__(f"Todo with ID {todo_id} not found")
        self.todo_id = todo_id


class StandupNotFoundError(NotFoundError):
    def __init__(self, standup_id: str) -> None:
        super().__init__(f"Standup with ID {standup_id} not found")
        self.standup_id = standup_id


class InvalidRequestError(AgentError):
    """Raised when a request payload is well-formed but unusable."""
