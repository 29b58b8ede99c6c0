"""Extraction provider data models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CompletionResult(BaseModel):
    """Outcome of one extraction call.

    A failed call is reported with success=False and a raw error string;
    callers sanitize the error before showing it.
    """

    success: bool
    content: Optional[str] = None
    # {"input": n, "output": n} when the provider reports usage
    tokens_used: Optional[dict[str, int]] = None
    error: Optional[str] = None
    # HTTP status of a rejected request, None for transport failures
    status_code: Optional[int] = None
