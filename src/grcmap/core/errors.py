"""Exception types raised by ingestion and extraction.

Validation problems are never raised from the validator itself; they come
back as a ValidationResult. FrameworkValidationError is only raised by the
ingestion pipeline when it is asked to gate an import.
"""

from __future__ import annotations

from typing import Optional

from ..models.control import ValidationResult


class GrcMapError(Exception):
    """Base class for all grcmap errors."""


class ConfigError(GrcMapError, ValueError):
    """Configuration is missing, unreadable, or names something that does not exist."""


class UnsupportedFormatError(GrcMapError, ValueError):
    def __init__(self, fmt: str):
        super().__init__(f"Unsupported format: {fmt}")
        self.format = fmt


class MalformedInputError(GrcMapError, ValueError):
    """The document itself cannot be turned into a framework."""


class CsvFormatError(MalformedInputError):
    pass


class JsonFormatError(MalformedInputError):
    def __init__(self, message: str, invalid_syntax: bool = False):
        super().__init__(message)
        self.invalid_syntax = invalid_syntax


class FrameworkValidationError(GrcMapError):
    def __init__(self, result: ValidationResult):
        super().__init__(f"Validation errors: {'; '.join(result.errors)}")
        self.result = result


class CollaboratorError(GrcMapError, RuntimeError):
    """The external extraction service failed or returned garbage."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class CollaboratorUnavailableError(ConfigError):
    """No credential or endpoint is configured for the extraction service.

    Raised before any network attempt. This is a configuration problem, so it
    is deliberately not a CollaboratorError.
    """

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ExtractionResponseError(CollaboratorError):
    """The extraction service answered, but not with parseable JSON."""
