"""Ingestion pipeline: parse, apply overrides, validate, summarize.

Produces an IngestionResult ready to be persisted by the surrounding
application. Nothing is stored here.
"""

from __future__ import annotations

import re
import time
from collections import Counter
from typing import Optional

from rich.console import Console

from ..core.config import DEFAULT_CONFIG
from ..core.errors import FrameworkValidationError, MalformedInputError
from ..models.control import Control, FrameworkCategory, FrameworkStats, IngestionResult
from ..providers.base import ExtractionProvider
from .parser import Content, normalize_control_id, parse_framework_document
from .validator import validate_framework

console = Console(stderr=True)


def generate_framework_id(name: str, version: str, now_ms: Optional[int] = None) -> str:
    """Build a framework id like iso-27001-2022-2022-1718000000000."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    version_slug = version.replace(".", "-").lower()
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{slug}-{version_slug}-{stamp}"


def derive_categories(controls: list[Control]) -> list[FrameworkCategory]:
    """One category per distinct control category, with its control count."""
    counts = Counter(c.category for c in controls)
    return [
        FrameworkCategory(id=category, name=category, control_count=count)
        for category, count in sorted(counts.items())
    ]


def summarize_controls(controls: list[Control]) -> FrameworkStats:
    return FrameworkStats.from_controls(controls)


def _check_size(content: Content, max_bytes: int) -> None:
    size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
    if size == 0:
        raise MalformedInputError("Content must be non-empty")
    if size > max_bytes:
        raise MalformedInputError(f"Content exceeds maximum size of {max_bytes // (1024 * 1024)}MB")


def ingest_framework(
    content: Content,
    format: str,
    name: Optional[str] = None,
    version: Optional[str] = None,
    description: Optional[str] = None,
    provider: Optional[ExtractionProvider] = None,
    config: Optional[dict] = None,
) -> IngestionResult:
    """Parse and validate one framework document.

    Raises the parser's errors unchanged, and FrameworkValidationError when
    the parsed framework does not pass validation.
    """
    config = config or DEFAULT_CONFIG
    _check_size(content, int(config.get("ingest", {}).get("max_content_bytes", 10 * 1024 * 1024)))

    framework = parse_framework_document(content, format, provider=provider, config=config)

    if name:
        framework.name = name
    if version:
        framework.version = version
    if description:
        framework.description = description

    validation = validate_framework(framework)
    if not validation.is_valid:
        console.print(
            f"  [yellow]WARN[/yellow] Rejected {framework.name or 'unnamed framework'}: "
            f"{len(validation.errors)} validation error(s)"
        )
        raise FrameworkValidationError(validation)

    for control in framework.controls:
        control.id = normalize_control_id(control.id)

    result = IngestionResult(
        framework_id=generate_framework_id(framework.name, framework.version),
        framework=framework,
        categories=derive_categories(framework.controls),
        stats=summarize_controls(framework.controls),
        validation=validation,
    )
    console.print(
        f"  [green]Ingested[/green] {framework.name} v{framework.version} "
        f"({result.stats.total_controls} controls, {len(result.categories)} categories)"
    )
    return result
