import os

import pytest

from chatbridge.core.config import ChatBridgeSettings


@pytest.fixture(autouse=True)
def _restore_env():
    original = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original)


def test_settings_read_provider_keys_from_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "openai-key")
    monkeypatch.setenv("XAI_API_KEY", "xai-key")
    monkeypatch.setenv("JWT_SECRET", "jwt-secret")

    settings = ChatBridgeSettings(_env_file=None)

    assert settings.openai_api_key.get_secret_value() == "openai-key"
    assert settings.xai_api_key.get_secret_value() == "xai-key"
    assert settings.jwt_secret.get_secret_value() == "jwt-secret"


def test_grok_api_key_alias_is_accepted(monkeypatch):
    monkeypatch.delenv("XAI_API_KEY", raising=False)
    monkeypatch.setenv("GROK_API_KEY", "grok-key")

    settings = ChatBridgeSettings(_env_file=None)

    assert settings.xai_api_key.get_secret_value() == "grok-key"


def test_settings_defaults_without_env(monkeypatch):
    for name in ("OPENAI_API_KEY", "XAI_API_KEY", "GROK_API_KEY", "STREAM_PROVIDER", "COMPLETION_PROVIDER"):
        monkeypatch.delenv(name, raising=False)

    settings = ChatBridgeSettings(_env_file=None)

    assert settings.openai_api_key is None
    assert settings.stream_provider == "grok"
    assert settings.completion_provider == "openai"
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.default_session_name == "New conversation"
    assert settings.chunk_queue_size == 64
