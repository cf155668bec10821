import base64
import json

import httpx
import pytest
from pydantic import SecretStr

from chatbridge.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    InvalidRequestError,
    RateLimitExceeded,
)
from chatbridge.llm.services.transcription import TranscriptionService, decode_audio

AUDIO = b"RIFF-fake-webm-bytes"


def _deepgram_settings(settings):
    return settings.model_copy(update={"deepgram_api_key": SecretStr("dg-test-key")})


def _transcript_payload(text):
    return {"results": {"channels": [{"alternatives": [{"transcript": text, "confidence": 0.98}]}]}}


def test_decode_audio_strips_data_url_prefix():
    encoded = base64.b64encode(AUDIO).decode()

    assert decode_audio(f"data:audio/webm;base64,{encoded}") == AUDIO
    assert decode_audio(encoded) == AUDIO
    assert decode_audio(AUDIO) == AUDIO


def test_decode_audio_rejects_garbage():
    with pytest.raises(InvalidRequestError):
        decode_audio("not base64!!")
    with pytest.raises(InvalidRequestError):
        decode_audio("")


@pytest.mark.asyncio
async def test_transcribe_posts_audio_and_returns_transcript(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.content
        return httpx.Response(200, json=_transcript_payload("Buy milk tomorrow."))

    service = TranscriptionService(_deepgram_settings(settings), transport=httpx.MockTransport(handler))

    transcript = await service.transcribe(base64.b64encode(AUDIO).decode())

    assert transcript == "Buy milk tomorrow."
    assert seen["url"].path == "/v1/listen"
    assert seen["url"].params["model"] == "nova-3"
    assert seen["url"].params["smart_format"] == "true"
    assert seen["auth"] == "Token dg-test-key"
    assert seen["body"] == AUDIO


@pytest.mark.asyncio
async def test_transcribe_without_api_key_is_a_configuration_error(settings):
    keyless = settings.model_copy(update={"deepgram_api_key": None})
    service = TranscriptionService(keyless, transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    with pytest.raises(ConfigurationError, match="DEEPGRAM_API_KEY"):
        await service.transcribe(base64.b64encode(AUDIO).decode())


@pytest.mark.asyncio
async def test_empty_transcript_is_an_upstream_error(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=_transcript_payload("")))
    service = TranscriptionService(_deepgram_settings(settings), transport=transport)

    with pytest.raises(ExternalServiceError, match="No transcript"):
        await service.transcribe(AUDIO)


@pytest.mark.asyncio
async def test_rate_limited_response_raises_rate_limit(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(429, text="slow down"))
    service = TranscriptionService(_deepgram_settings(settings), transport=transport)

    with pytest.raises(RateLimitExceeded):
        await service.transcribe(AUDIO)


@pytest.mark.asyncio
async def test_grant_token_returns_access_token(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"access_token": "short-lived", "expires_in": 30})

    service = TranscriptionService(_deepgram_settings(settings), transport=httpx.MockTransport(handler))

    assert await service.grant_token() == "short-lived"
    assert seen == {"path": "/v1/auth/grant", "body": {"type": "speak"}}
