"""Chat-completion client handles backed by the OpenAI SDK."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from typing import Any

from openai import APIError, AsyncOpenAI, RateLimitError

from ...core.config import ChatBridgeSettings
from ...core.exceptions import ConfigurationError, ExternalServiceError, RateLimitExceeded
from ...core.logging_config import get_logger
from ..schemas.chat import ChatMessage

logger = get_logger(__name__)


class LLMClient:
    """Thin wrapper around an OpenAI-compatible chat API.

    Each handle owns its credentials, base URL and model; the SDK client is
    created on first use so a provider without an API key only fails when it
    is actually called.
    """

    def __init__(
        self,
        name: str,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
    ) -> None:
        self.name = name
        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client: AsyncOpenAI | None = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(f"No API key configured for LLM provider '{self.name}'")
            masked_key = f"{self._api_key[:4]}***{self._api_key[-4:]}"
            logger.info(
                "llm_client_init",
                provider=self.name,
                base_url=self._base_url,
                model=self.model,
                api_key_masked=masked_key,
            )
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    def _request_kwargs(
        self,
        messages: Iterable[ChatMessage],
        tools: list[dict[str, Any]] | None,
        tool_choice: dict[str, Any] | str | None,
        temperature: float,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_payload() for message in messages],
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = tool_choice or "auto"
        return kwargs

    async def chat_completion(
        self,
        messages: Iterable[ChatMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | str | None = "auto",
        temperature: float = 0.7,
    ) -> dict[str, Any]:
        """Issue a single chat completion request and return the response as a dict."""

        kwargs = self._request_kwargs(messages, tools, tool_choice, temperature)
        logger.info(
            "llm_chat_request",
            provider=self.name,
            message_count=len(kwargs["messages"]),
            tool_count=len(tools or []),
            temperature=temperature,
        )
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except APIError as exc:  # pragma: no cover - network path
            raise self._wrap_error(exc) from exc

        return response.model_dump()

    async def stream_chat_completion(
        self,
        messages: Iterable[ChatMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | str | None = "auto",
        temperature: float = 0.7,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield each streamed completion event as a dict, in arrival order."""

        kwargs = self._request_kwargs(messages, tools, tool_choice, temperature)
        logger.info(
            "llm_stream_request",
            provider=self.name,
            message_count=len(kwargs["messages"]),
            tool_count=len(tools or []),
            temperature=temperature,
        )
        try:
            stream = await self.client.chat.completions.create(stream=True, **kwargs)
        except APIError as exc:  # pragma: no cover - network path
            raise self._wrap_error(exc) from exc

        try:
            async for event in stream:
                yield event.model_dump()
        except APIError as exc:  # pragma: no cover - network path
            raise self._wrap_error(exc) from exc
        finally:
            await stream.close()

    def _wrap_error(self, exc: APIError) -> ExternalServiceError:
        logger.error(
            "llm_sdk_error",
            provider=self.name,
            error_type=type(exc).__name__,
            message=str(exc),
        )
        if isinstance(exc, RateLimitError):
            return RateLimitExceeded(f"{self.name} rate limited: {exc}")
        return ExternalServiceError(f"{self.name} SDK error: {exc}")


def build_llm_clients(settings: ChatBridgeSettings) -> dict[str, LLMClient]:
    """Construct one client handle per configured provider."""

    def secret(value: Any) -> str | None:
        return value.get_secret_value() if value is not None else None

    return {
        "openai": LLMClient(
            "openai",
            api_key=secret(settings.openai_api_key),
            base_url=str(settings.openai_api_base),
            model=settings.openai_model,
        ),
        "grok": LLMClient(
            "grok",
            api_key=secret(settings.xai_api_key),
            base_url=str(settings.xai_api_base),
            model=settings.xai_model,
        ),
    }
