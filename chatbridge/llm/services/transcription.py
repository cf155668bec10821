"""Speech-to-text through the Deepgram REST API."""

from __future__ import annotations

import base64
import binascii
from typing import Any

import httpx

from ...core.config import ChatBridgeSettings
from ...core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    InvalidRequestError,
    RateLimitExceeded,
)
from ...core.http_client import async_http_client
from ...core.logging_config import get_logger

logger = get_logger(__name__)


def decode_audio(audio_data: str | bytes) -> bytes:
    """Raw audio bytes from a base64 string, with or without a `data:` URL prefix."""

    if isinstance(audio_data, bytes):
        return audio_data
    encoded = audio_data.split(",", 1)[1] if "," in audio_data else audio_data
    try:
        audio = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError(f"Audio data is not valid base64: {exc}") from exc
    if not audio:
        raise InvalidRequestError("Audio data is empty")
    return audio


class TranscriptionService:
    def __init__(
        self,
        settings: ChatBridgeSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    def _authorization(self) -> dict[str, str]:
        if self._settings.deepgram_api_key is None:
            raise ConfigurationError("DEEPGRAM_API_KEY environment variable is not set")
        return {"Authorization": f"Token {self._settings.deepgram_api_key.get_secret_value()}"}

    async def transcribe(self, audio_data: str | bytes) -> str:
        """Transcribe one pre-recorded clip and return the first alternative's transcript."""

        headers = self._authorization()
        audio = decode_audio(audio_data)
        payload = await self._request(
            "POST",
            "/listen",
            params={"model": self._settings.deepgram_model, "smart_format": "true"},
            content=audio,
            headers={**headers, "Content-Type": "application/octet-stream"},
        )

        try:
            transcript = payload["results"]["channels"][0]["alternatives"][0]["transcript"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ExternalServiceError("No transcript found in Deepgram response") from exc
        if not transcript:
            raise ExternalServiceError("No transcript found in Deepgram response")

        logger.info("audio_transcribed", audio_bytes=len(audio), transcript_length=len(transcript))
        return transcript

    async def grant_token(self) -> str:
        """Short-lived Deepgram access token the browser can use directly."""

        payload = await self._request(
            "POST", "/auth/grant", json={"type": "speak"}, headers=self._authorization()
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise ExternalServiceError("Failed to generate Deepgram token")
        logger.info("deepgram_token_granted", expires_in=payload.get("expires_in"))
        return token

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        base_url = str(self._settings.deepgram_api_base).rstrip("/") + "/"
        try:
            async with async_http_client(
                base_url=base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path.lstrip("/"), **kwargs)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Deepgram request failed: {exc}") from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RateLimitExceeded(response.text)
        if response.is_error:
            logger.warning("deepgram_request_failed", path=path, status_code=response.status_code)
            raise ExternalServiceError(
                f"Deepgram responded with {response.status_code}: {response.text}"
            )
        return response.json()
