"""Extraction provider abstraction.

A provider is the external language-model collaborator used to turn free
text into a framework JSON document. Calls are single-shot: a failed
completion is reported back to the caller, never retried here.
"""

from __future__ import annotations

import os
from typing import Optional, Protocol, runtime_checkable

from ..core.errors import ConfigError
from ..models.provider import CompletionResult

PROVIDER_NAMES = ("anthropic", "openai", "ollama")


@runtime_checkable
class ExtractionProvider(Protocol):
    """Protocol that all extraction providers must implement."""

    name: str
    source_tag: str

    def is_configured(self) -> bool: ...

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult: ...


class BaseProvider:
    """Base class with shared credential and config handling."""

    name: str = "base"
    source_tag: str = "base"
    default_api_key_env: Optional[str] = None

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.timeout = common_config.get("timeout_seconds", 120)
        self.temperature = common_config.get("temperature", 0.0)

    @property
    def api_key_env(self) -> Optional[str]:
        return self.config.get("api_key_env", self.default_api_key_env)

    def _get_api_key(self) -> Optional[str]:
        if self.config.get("api_key"):
            return self.config["api_key"]
        if not self.api_key_env:
            return None
        return os.environ.get(self.api_key_env)

    def is_configured(self) -> bool:
        """True when the provider has the credential it needs to be called."""
        return bool(self._get_api_key())

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        raise NotImplementedError


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    endpoint_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured extraction provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "anthropic")

    provider_config = dict(ai_config.get(provider_name, {}))
    if model_override:
        provider_config["model"] = model_override
    if endpoint_override:
        provider_config["endpoint"] = endpoint_override

    common_config = {k: v for k, v in ai_config.items() if k not in PROVIDER_NAMES}

    if provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    elif provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "ollama":
        from .ollama import OllamaProvider
        return OllamaProvider(provider_config, common_config)
    else:
        raise ConfigError(f"Unknown AI provider: {provider_name}")
