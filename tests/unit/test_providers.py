"""Tests for providers/."""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest

from grcmap.providers.base import BaseProvider, ExtractionProvider, get_ai_provider

_real_client = httpx.Client


def _mock_client(handler):
    """Patch httpx.Client so providers talk to an in-process handler."""
    def factory(*args, **kwargs):
        return _real_client(*args, transport=httpx.MockTransport(handler), **kwargs)
    return patch.object(httpx, "Client", side_effect=factory)


class TestGetAIProvider:
    def test_anthropic_provider(self):
        config = {"ai": {"provider": "anthropic", "anthropic": {"api_key": "test"}}}
        provider = get_ai_provider(config)
        assert provider.name == "anthropic"
        assert provider.source_tag == "claude"

    def test_openai_provider(self):
        config = {"ai": {"provider": "openai", "openai": {"api_key": "test"}}}
        provider = get_ai_provider(config)
        assert provider.name == "openai"
        assert provider.source_tag == "openai"

    def test_ollama_provider(self):
        config = {"ai": {"provider": "ollama", "ollama": {}}}
        provider = get_ai_provider(config)
        assert provider.name == "ollama"

    def test_invalid_provider_raises(self):
        config = {"ai": {"provider": "invalid"}}
        with pytest.raises(ValueError, match="Unknown"):
            get_ai_provider(config)

    def test_provider_override(self):
        config = {"ai": {"provider": "anthropic", "openai": {"api_key": "test"}}}
        provider = get_ai_provider(config, provider_override="openai")
        assert provider.name == "openai"

    def test_model_and_endpoint_override(self):
        config = {"ai": {"provider": "ollama", "ollama": {"model": "small"}}}
        provider = get_ai_provider(config, model_override="big", endpoint_override="http://gpu:11434")
        assert provider.config["model"] == "big"
        assert provider.endpoint == "http://gpu:11434"

    def test_common_settings_passed_through(self):
        config = {"ai": {"provider": "anthropic", "timeout_seconds": 5, "temperature": 0.2, "anthropic": {}}}
        provider = get_ai_provider(config)
        assert provider.timeout == 5
        assert provider.temperature == 0.2

    def test_providers_satisfy_protocol(self):
        provider = get_ai_provider({"ai": {"provider": "anthropic"}})
        assert isinstance(provider, ExtractionProvider)


class TestIsConfigured:
    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        provider = get_ai_provider({"ai": {"provider": "anthropic", "anthropic": {}}})
        assert provider.is_configured()

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        provider = get_ai_provider({"ai": {"provider": "openai", "openai": {}}})
        assert not provider.is_configured()

    def test_custom_key_env(self, monkeypatch):
        monkeypatch.setenv("MY_GRC_KEY", "secret")
        provider = get_ai_provider({"ai": {"provider": "openai", "openai": {"api_key_env": "MY_GRC_KEY"}}})
        assert provider.api_key_env == "MY_GRC_KEY"
        assert provider.is_configured()

    def test_ollama_needs_only_an_endpoint(self):
        assert get_ai_provider({"ai": {"provider": "ollama", "ollama": {"endpoint": "http://x"}}}).is_configured()
        assert not get_ai_provider({"ai": {"provider": "ollama", "ollama": {}}}).is_configured()

    def test_base_provider_complete_is_abstract(self):
        with pytest.raises(NotImplementedError):
            BaseProvider({}, {}).complete("system", "user")


class TestAnthropicProvider:
    def test_successful_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": '{"controls": []}'}],
                "usage": {"input_tokens": 12, "output_tokens": 3},
            })

        provider = get_ai_provider({"ai": {"provider": "anthropic", "anthropic": {"api_key": "k", "model": "m"}}})
        with _mock_client(handler):
            result = provider.complete("system text", "user text")

        assert result.success
        assert result.content == '{"controls": []}'
        assert result.tokens_used == {"input": 12, "output": 3}
        assert seen["headers"]["x-api-key"] == "k"
        assert seen["body"]["model"] == "m"
        assert seen["body"]["system"] == "system text"
        assert seen["body"]["messages"] == [{"role": "user", "content": "user text"}]

    def test_http_error_is_reported_not_raised(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="invalid x-api-key")

        provider = get_ai_provider({"ai": {"provider": "anthropic", "anthropic": {"api_key": "k"}}})
        with _mock_client(handler):
            result = provider.complete("s", "u")

        assert not result.success
        assert result.status_code == 401
        assert result.error.startswith("401 | ")

    def test_missing_key_fails_without_request(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        provider = get_ai_provider({"ai": {"provider": "anthropic", "anthropic": {}}})
        with _mock_client(handler):
            result = provider.complete("s", "u")
        assert not result.success
        assert "ANTHROPIC_API_KEY" in result.error


class TestOpenAIProvider:
    def test_successful_completion(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["authorization"] == "Bearer k"
            body = json.loads(request.content)
            assert body["response_format"] == {"type": "json_object"}
            return httpx.Response(200, json={
                "choices": [{"message": {"content": '{"controls": []}'}}],
                "usage": {"prompt_tokens": 7, "completion_tokens": 2},
            })

        provider = get_ai_provider({"ai": {"provider": "openai", "openai": {"api_key": "k"}}})
        with _mock_client(handler):
            result = provider.complete("s", "u")

        assert result.success
        assert result.content == '{"controls": []}'

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = get_ai_provider({"ai": {"provider": "openai", "openai": {"api_key": "k"}}})
        with _mock_client(handler):
            result = provider.complete("s", "u")

        assert not result.success
        assert "connection refused" in result.error


class TestOllamaProvider:
    def test_posts_to_generate_endpoint(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/generate"
            body = json.loads(request.content)
            assert body["format"] == "json"
            assert body["stream"] is False
            return httpx.Response(200, json={"response": '{"controls": []}'})

        provider = get_ai_provider({"ai": {"provider": "ollama", "ollama": {"endpoint": "http://ollama:11434/"}}})
        with _mock_client(handler):
            result = provider.complete("s", "u")

        assert result.success
        assert result.content == '{"controls": []}'
