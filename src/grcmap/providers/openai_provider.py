"""OpenAI chat completions provider."""

from __future__ import annotations

import httpx

from ..models.provider import CompletionResult
from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    name = "openai"
    source_tag = "openai"
    default_api_key_env = "OPENAI_API_KEY"
    API_URL = "https://api.openai.com/v1/chat/completions"

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {self.api_key_env}",
            )

        body = {
            "model": self.config.get("model", "gpt-4o"),
            "max_tokens": max_tokens or self.config.get("max_tokens", 16000),
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.config.get("endpoint", self.API_URL), json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                error=f"{e.response.status_code} | {e.response.text}",
                status_code=e.response.status_code,
            )
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            return CompletionResult(success=False, error=str(e) or type(e).__name__)

        usage = data.get("usage", {})
        return CompletionResult(
            success=True,
            content=content,
            tokens_used={
                "input": usage.get("prompt_tokens", 0),
                "output": usage.get("completion_tokens", 0),
            },
        )
