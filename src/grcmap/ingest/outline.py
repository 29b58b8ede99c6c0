"""Heuristic control extraction from pre-extracted framework text.

Recognizes the outline conventions of ISO 27001, NIST and SOC 2 style
documents without calling a language model:

    ACCESS CONTROL
    A.9.1 Access control policy
    An access control policy shall be established...
    AC-2: Account Management

Upper-case lines start a new category; lines that open with a control
identifier start a new control, and up to three following lines become its
description.
"""

from __future__ import annotations

import re
from datetime import datetime

from ..core.errors import MalformedInputError
from ..models.control import Control, ParsedFramework

KNOWN_FRAMEWORKS: dict[str, str] = {
    "ISO 27001": "ISO 27001:2022",
    "NIST CSF": "NIST Cybersecurity Framework",
    "SOC 2": "SOC 2 Type II",
    "CIS": "CIS Controls",
    "PCI DSS": "PCI Data Security Standard",
}

VERSION_PATTERN = re.compile(r"(?:v|version|ver|release)[\s:]*([0-9.]+)", re.IGNORECASE)
# A.5.1.1, 1.1, AC-2, CC6.1, ID.AM-1 followed by a separator and a title.
CONTROL_PATTERN = re.compile(
    r"^((?:[A-Z]{1,3}[.\-]?\d+|\d+[.\-]\d+|[A-Z]{2}\.[A-Z]{2}-\d+)(?:[.\-]\d+){0,2})"
    r"(?:\s*[-:]\s*|\s+)(.+)$"
)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
DESCRIPTION_LOOKAHEAD = 3


def extract_framework_name(lines: list[str]) -> str:
    for keyword, name in KNOWN_FRAMEWORKS.items():
        if any(keyword in line for line in lines):
            return name
    title = next((line for line in lines if len(line) > 5 and "Version" not in line), None)
    return title or "Imported Framework"


def extract_version(lines: list[str]) -> str:
    for line in lines:
        match = VERSION_PATTERN.search(line)
        if match:
            return match.group(1)
    return "1.0"


def _is_category_header(line: str) -> bool:
    return (
        5 < len(line) < 100
        and line == line.upper()
        and any(ch.isalpha() for ch in line)
        and "VERSION" not in line
        and "DOCUMENT" not in line
    )


def normalize_category(category: str) -> str:
    return " ".join(word.capitalize() for word in category.strip().split(" "))


def extract_controls(lines: list[str]) -> list[Control]:
    controls: list[Control] = []
    current_category = "Uncategorized"

    for i, line in enumerate(lines):
        if _is_category_header(line):
            current_category = normalize_category(line)
            continue

        match = CONTROL_PATTERN.match(line)
        if not match:
            continue

        control_id, title = match.group(1), match.group(2).strip()
        if not title:
            continue

        description_parts: list[str] = []
        for next_line in lines[i + 1:i + 1 + DESCRIPTION_LOOKAHEAD]:
            if not next_line or CONTROL_PATTERN.match(next_line) or _is_category_header(next_line):
                break
            if "Page " not in next_line and len(next_line) < 200:
                description_parts.append(next_line)

        controls.append(Control(
            id=control_id,
            category=current_category,
            title=title[:MAX_TITLE_LENGTH],
            description=" ".join(description_parts)[:MAX_DESCRIPTION_LENGTH],
        ))

    return controls


def parse_outline_text(text: str) -> ParsedFramework:
    """Parse framework structure out of plain text."""
    lines = [line.strip() for line in text.split("\n")]

    controls = extract_controls(lines)
    if not controls:
        raise MalformedInputError(
            "No controls found in document. Ensure the document contains control definitions."
        )

    return ParsedFramework(
        name=extract_framework_name(lines),
        version=extract_version(lines),
        description="Framework imported from document outline",
        source="outline_upload",
        controls=controls,
        metadata={
            "importDate": datetime.now().isoformat(),
            "lineCount": len(lines),
        },
    )
