"""Redaction of credentials in collaborator error messages."""

from __future__ import annotations

import os
import re

_SECRET_PATTERNS: list[tuple[str, str]] = [
    (r"sk-ant-[a-zA-Z0-9_-]+", "[REDACTED_KEY]"),
    (r"sk-(?:proj-)?[a-zA-Z0-9_-]{20,}", "[REDACTED_KEY]"),
    (r"Bearer\s+\S+", "Bearer [REDACTED]"),
    (r"(?i)x-api-key:\s*\S+", "x-api-key: [REDACTED]"),
    (r"(?i)api-key:\s*\S+", "api-key: [REDACTED]"),
    (r"(?i)Authorization:\s*\S+", "Authorization: [REDACTED]"),
]

MAX_ERROR_LENGTH = 500


def sanitize_error(message: str) -> str:
    """Strip API keys and home paths from a provider error, and cap its length."""
    if not message:
        return message

    sanitized = message
    for pattern, replacement in _SECRET_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized)

    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "[USER_HOME]")

    if len(sanitized) > MAX_ERROR_LENGTH:
        sanitized = sanitized[:MAX_ERROR_LENGTH] + "..."
    return sanitized
