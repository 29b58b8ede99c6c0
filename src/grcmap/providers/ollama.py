"""Ollama local inference provider.

Needs no credential; it counts as configured once an endpoint is set.
"""

from __future__ import annotations

import httpx

from ..models.provider import CompletionResult
from .base import BaseProvider


class OllamaProvider(BaseProvider):
    name = "ollama"
    source_tag = "ollama"

    @property
    def endpoint(self) -> str:
        return self.config.get("endpoint", "")

    def is_configured(self) -> bool:
        return bool(self.endpoint)

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        body = {
            "model": self.config.get("model", "llama3.1:70b"),
            "system": system_prompt,
            "prompt": user_prompt,
            "format": "json",
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if max_tokens:
            body["options"]["num_predict"] = max_tokens

        try:
            url = f"{self.endpoint.rstrip('/')}/api/generate"
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=body)
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

        return CompletionResult(success=True, content=data.get("response", ""))
