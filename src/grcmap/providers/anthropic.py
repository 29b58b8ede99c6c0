"""Anthropic Messages API provider."""

from __future__ import annotations

import httpx

from ..models.provider import CompletionResult
from .base import BaseProvider


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    source_tag = "claude"
    default_api_key_env = "ANTHROPIC_API_KEY"
    API_URL = "https://api.anthropic.com/v1/messages"

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {self.api_key_env}",
            )

        body = {
            "model": self.config.get("model", "claude-sonnet-4-5-20250929"),
            "max_tokens": max_tokens or self.config.get("max_tokens", 16000),
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        headers = {
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.config.get("endpoint", self.API_URL), json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                error=f"{e.response.status_code} | {e.response.text}",
                status_code=e.response.status_code,
            )
        except (httpx.HTTPError, ValueError) as e:
            return CompletionResult(success=False, error=str(e) or type(e).__name__)

        content = next(
            (b.get("text") for b in data.get("content", []) if b.get("type") == "text"),
            None,
        )
        usage = data.get("usage", {})
        return CompletionResult(
            success=True,
            content=content,
            tokens_used={
                "input": usage.get("input_tokens", 0),
                "output": usage.get("output_tokens", 0),
            },
        )
