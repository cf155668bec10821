"""Configuration management for the ChatBridge service."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[2]
_PACKAGE_DIR = Path(__file__).resolve().parents[1]
# Repo-root .env first, then the package directory, then the current working directory.
_ENV_FILE_CANDIDATES: tuple[str, ...] = (
    str(_REPO_ROOT / ".env"),
    str(_PACKAGE_DIR / ".env"),
    ".env",
)

ProviderLiteral = Literal["openai", "grok"]


class ChatBridgeSettings(BaseSettings):
    """Centralised configuration derived from environment variables."""

    app_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str | None = Field(
        None,
        description="Log file path; leave empty to log to stdout only",
    )

    app_host: str = Field("0.0.0.0", description="FastAPI bind host")
    app_port: int = Field(8000, description="FastAPI bind port")

    openai_api_key: SecretStr | None = Field(None, description="OpenAI API key")
    openai_api_base: AnyHttpUrl = Field(
        "https://api.openai.com/v1", description="OpenAI API endpoint"
    )
    openai_model: str = Field("gpt-4o-mini", description="OpenAI chat model")

    xai_api_key: SecretStr | None = Field(
        None,
        description="xAI (Grok) API key",
        validation_alias=AliasChoices("XAI_API_KEY", "GROK_API_KEY"),
    )
    xai_api_base: AnyHttpUrl = Field("https://api.x.ai/v1", description="xAI API endpoint")
    xai_model: str = Field("grok-4-fast-non-reasoning", description="Grok chat model")

    completion_provider: ProviderLiteral = Field(
        "openai", description="Provider used for buffered completions and titles"
    )
    stream_provider: ProviderLiteral = Field(
        "grok", description="Provider used for streamed chat responses"
    )
    llm_temperature: float = Field(0.7, ge=0.0, le=2.0)

    jwt_secret: SecretStr | None = Field(
        None, description="HS256 secret for user credentials handed to widgets"
    )
    jwt_ttl_seconds: int = Field(86400, description="Lifetime of issued user credentials")

    widget_base_url: AnyHttpUrl | None = Field(
        None, description="Base URL serving widget HTML templates"
    )

    mcp_jwks_uri: AnyHttpUrl | None = Field(
        None, description="JWKS endpoint used to verify MCP bearer tokens"
    )
    mcp_issuer: str | None = None
    mcp_audience: str | None = None

    deepgram_api_key: SecretStr | None = Field(None, description="Deepgram API key")
    deepgram_api_base: AnyHttpUrl = Field(
        "https://api.deepgram.com/v1", description="Deepgram API endpoint"
    )
    deepgram_model: str = Field("nova-3", description="Deepgram speech-to-text model")

    chunk_queue_size: int = Field(64, ge=1, description="Capacity of stream chunk channels")
    default_session_name: str = Field(
        "New conversation", description="Placeholder name given to fresh chat sessions"
    )

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_CANDIDATES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> ChatBridgeSettings:
    """Return a cached ChatBridgeSettings instance."""

    return ChatBridgeSettings()


def resolved_env_file() -> str | None:
    """Return the first readable .env file from the candidate list."""

    for candidate in _ENV_FILE_CANDIDATES:
        path = Path(candidate).expanduser()
        if path.is_file():
            return str(path)
    return None


def env_file_candidates() -> tuple[str, ...]:
    """Expose configured env file search order for diagnostics."""

    return _ENV_FILE_CANDIDATES
