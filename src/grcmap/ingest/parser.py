"""Framework document parser.

Turns CSV, JSON, free text (via an extraction provider), PDF and plain
outline text into a ParsedFramework. Parsing failures are raised; structural
problems in a successfully parsed framework are left for the validator.
"""

from __future__ import annotations

import csv
import io
import json
import re
from datetime import datetime
from typing import Optional, Union

from pypdf import PdfReader
from pypdf.errors import PdfReadError
from rich.console import Console

from ..core.config import DEFAULT_CONFIG
from ..core.errors import (
    CollaboratorError,
    CollaboratorUnavailableError,
    CsvFormatError,
    ExtractionResponseError,
    JsonFormatError,
    MalformedInputError,
    UnsupportedFormatError,
)
from ..models.control import Control, ControlType, ParsedFramework
from ..providers.base import ExtractionProvider, get_ai_provider
from ..utils.sanitize import sanitize_error

console = Console(stderr=True)

SUPPORTED_FORMATS = ("csv", "json", "text", "pdf", "outline")

REQUIRED_CSV_COLUMNS = ("control_id", "category", "title")
OPTIONAL_CSV_COLUMNS = ("description", "control_type", "criticality")

DEFAULT_CONTROL_TYPE = ControlType.OPERATIONAL.value

EXTRACTION_SYSTEM_PROMPT = """You extract compliance framework structure from documents.

Read the document and return a single JSON object with exactly this shape:

{
  "name": "framework name",
  "version": "framework version",
  "description": "one paragraph description",
  "controls": [
    {
      "id": "control identifier, e.g. A.5.1.1 or AC-1",
      "category": "category identifier or name the control belongs to",
      "title": "short control title",
      "description": "full control requirement text",
      "controlType": "technical | operational | management",
      "criticality": "low | medium | high | critical"
    }
  ]
}

Rules:
- Include every control stated in the document, in document order.
- Use only the three controlType values and four criticality values listed.
- Return JSON only. No prose, no markdown fences."""

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*\n(.*?)\n\s*```\s*$", re.DOTALL | re.IGNORECASE)

Content = Union[str, bytes]


def normalize_control_id(control_id: str) -> str:
    """Trim, uppercase and drop a leading literal "CONTROL " prefix."""
    normalized = control_id.strip().upper()
    if normalized.startswith("CONTROL "):
        normalized = normalized[len("CONTROL "):]
    return normalized


def extract_category_from_control_id(control_id: str) -> str:
    """Return the first two dot segments of a control id (A.5.1.1 -> A.5)."""
    parts = control_id.split(".")
    if len(parts) < 2:
        return control_id
    return ".".join(parts[:2])


def _decode(content: Content) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig", errors="replace")
    return content.lstrip("\ufeff")


def _as_str(*candidates: object, default: str = "") -> str:
    """First truthy candidate as a string, else default."""
    for value in candidates:
        if value:
            return str(value)
    return default


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def _split_row(line: str, quoting: bool) -> list[str]:
    if quoting:
        return [c.strip() for c in next(csv.reader([line]), [])]
    return [c.strip() for c in line.split(",")]


def parse_csv(content: Content, quoting: bool = False) -> ParsedFramework:
    """Parse a CSV framework export.

    Expected columns: control_id, category, title, and optionally
    description, control_type, criticality. Fields are split positionally
    on commas; pass quoting=True to honour double-quoted fields that
    themselves contain commas.
    """
    lines = _decode(content).split("\n")

    if len(lines) < 2:
        raise CsvFormatError("CSV file is empty or malformed")

    headers = [h.lower() for h in _split_row(lines[0], quoting)]
    missing = [c for c in REQUIRED_CSV_COLUMNS if c not in headers]
    if missing:
        raise CsvFormatError(
            f"CSV missing required columns: {', '.join(REQUIRED_CSV_COLUMNS)} "
            f"(not found: {', '.join(missing)})"
        )

    index = {name: headers.index(name) for name in REQUIRED_CSV_COLUMNS + OPTIONAL_CSV_COLUMNS if name in headers}

    def column(columns: list[str], name: str) -> str:
        i = index.get(name)
        if i is None or i >= len(columns):
            return ""
        return columns[i]

    controls: list[Control] = []
    for raw in lines[1:]:
        line = raw.strip()
        if not line:
            continue

        columns = _split_row(line, quoting)
        criticality = column(columns, "criticality").lower()
        controls.append(Control(
            id=column(columns, "control_id"),
            category=column(columns, "category"),
            title=column(columns, "title"),
            description=column(columns, "description"),
            control_type=column(columns, "control_type").lower() or DEFAULT_CONTROL_TYPE,
            criticality=criticality or None,
        ))

    return ParsedFramework(
        name="Imported Framework",
        version="1.0",
        description="Framework imported from CSV",
        source="csv_upload",
        controls=controls,
        metadata={
            "importDate": datetime.now().isoformat(),
            "rowCount": len(controls),
        },
    )


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _control_from_entry(entry: object) -> Control:
    if not isinstance(entry, dict):
        entry = {}

    related = entry.get("relatedControls")
    if related is None:
        related = entry.get("related_controls")
    objectives = entry.get("objectives")
    criticality = entry.get("criticality")

    return Control(
        id=_as_str(entry.get("id"), entry.get("control_id")),
        category=_as_str(entry.get("category"), default="Uncategorized"),
        title=_as_str(entry.get("title")),
        description=_as_str(entry.get("description")),
        control_type=_as_str(entry.get("controlType"), entry.get("control_type"), default=DEFAULT_CONTROL_TYPE),
        criticality=str(criticality).lower() if criticality else None,
        related_controls=[str(r) for r in related] if isinstance(related, list) else None,
        objectives=[str(o) for o in objectives] if isinstance(objectives, list) else None,
    )


def _framework_from_payload(data: dict, source: str, metadata: Optional[dict] = None) -> ParsedFramework:
    extra = data.get("metadata")
    merged = dict(extra) if isinstance(extra, dict) else {}
    merged.update(metadata or {})

    return ParsedFramework(
        name=_as_str(data.get("name")),
        version=_as_str(data.get("version"), default="1.0"),
        description=_as_str(data.get("description")),
        source=source,
        controls=[_control_from_entry(c) for c in data.get("controls") or []],
        metadata=merged,
    )


def parse_json(content: Content) -> ParsedFramework:
    """Parse a JSON framework document: {name, version?, description?, controls: [...]}."""
    try:
        data = json.loads(_decode(content))
    except json.JSONDecodeError as e:
        raise JsonFormatError("Invalid JSON format", invalid_syntax=True) from e

    if not isinstance(data, dict) or not data.get("name") or not isinstance(data.get("controls"), list):
        raise JsonFormatError("JSON missing required fields: name, controls")

    return _framework_from_payload(data, "json_upload")


# ---------------------------------------------------------------------------
# Free text and PDF (extraction provider)
# ---------------------------------------------------------------------------

def _resolve_provider(provider: Optional[ExtractionProvider], config: Optional[dict]) -> ExtractionProvider:
    if provider is not None:
        return provider
    return get_ai_provider(config or DEFAULT_CONFIG)


def _load_extraction_payload(raw: str, provider_name: str) -> dict:
    text = raw.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionResponseError(
            f"Extraction response from {provider_name} is not valid JSON: {e.msg}",
            provider=provider_name,
        ) from e
    if not isinstance(data, dict) or not isinstance(data.get("controls"), list):
        raise ExtractionResponseError(
            f"Extraction response from {provider_name} has no controls array",
            provider=provider_name,
        )
    return data


def parse_text(
    content: Content,
    provider: Optional[ExtractionProvider] = None,
    config: Optional[dict] = None,
    source: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> ParsedFramework:
    """Extract a framework from free text using the configured language model.

    Raises CollaboratorUnavailableError before any network traffic when the
    provider has no credential, CollaboratorError when the call fails, and
    ExtractionResponseError when the answer is not a framework JSON object.
    """
    text = _decode(content)
    extractor = _resolve_provider(provider, config)

    if not extractor.is_configured():
        raise CollaboratorUnavailableError(
            f"Text extraction requires the '{extractor.name}' provider to be configured "
            f"(set {getattr(extractor, 'api_key_env', None) or 'its endpoint'})",
            provider=extractor.name,
        )

    result = extractor.complete(
        EXTRACTION_SYSTEM_PROMPT,
        f"Extract the compliance framework from this document:\n\n{text}",
    )
    if not result.success:
        message = sanitize_error(result.error or "unknown error")
        console.print(f"  [red]ERROR[/red] {extractor.name} extraction failed: {message}")
        raise CollaboratorError(f"Extraction call to {extractor.name} failed: {message}", provider=extractor.name)

    data = _load_extraction_payload(result.content or "", extractor.name)

    meta = {
        "provider": extractor.name,
        "extractionDate": datetime.now().isoformat(),
        "tokensUsed": result.tokens_used,
    }
    meta.update(metadata or {})
    return _framework_from_payload(data, source or f"text_upload_{extractor.source_tag}", meta)


def extract_pdf_text(content: bytes) -> tuple[str, int]:
    """Extract the text of every page of a PDF. Returns (text, page_count)."""
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise MalformedInputError(f"Unreadable PDF document: {e}") from e
    return "\n".join(pages), len(pages)


def parse_pdf(
    content: Content,
    provider: Optional[ExtractionProvider] = None,
    config: Optional[dict] = None,
) -> ParsedFramework:
    """Extract PDF text, then run the free-text path on it.

    Buffers that are not real PDFs are treated as already-extracted text.
    """
    page_count = None
    if isinstance(content, bytes) and content.lstrip().startswith(b"%PDF"):
        text, page_count = extract_pdf_text(content)
        if not text.strip():
            raise MalformedInputError("PDF contains no extractable text")
    else:
        text = _decode(content)

    return parse_text(
        text,
        provider=provider,
        config=config,
        source="pdf_upload",
        metadata={"pageCount": page_count},
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def parse_framework_document(
    content: Content,
    format: str,
    provider: Optional[ExtractionProvider] = None,
    config: Optional[dict] = None,
) -> ParsedFramework:
    """Parse a framework document in the given format."""
    fmt = (format or "").lower()
    config = config or DEFAULT_CONFIG

    if fmt == "csv":
        return parse_csv(content, quoting=bool(config.get("ingest", {}).get("csv_quoting", False)))
    if fmt == "json":
        return parse_json(content)
    if fmt == "text":
        return parse_text(content, provider=provider, config=config)
    if fmt == "pdf":
        return parse_pdf(content, provider=provider, config=config)
    if fmt == "outline":
        from .outline import parse_outline_text
        return parse_outline_text(_decode(content))
    raise UnsupportedFormatError(format)
