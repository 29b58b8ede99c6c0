"""Mapping report formatters (JSON and markdown)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from ..models.mapping import FrameworkMapping


def mapping_to_dict(mapping: FrameworkMapping) -> dict:
    """Serialize a framework mapping with camelCase keys."""
    return mapping.model_dump(mode="json", by_alias=True)


def export_mapping_json(mapping: FrameworkMapping, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(mapping_to_dict(mapping), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return output_path


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_mapping_markdown(
    mapping: FrameworkMapping,
    compatibility: Optional[float] = None,
    source_total: Optional[int] = None,
) -> str:
    """Render a framework mapping as a markdown report.

    compatibility is the static prior for the framework pair and is shown
    apart from the computed completeness. source_total is the number of
    source controls submitted; when omitted it is inferred from the mapped
    and unmapped counts.
    """
    matched = [m for m in mapping.mappings if m.target_control_ids]
    unmapped = mapping.unmapped_controls
    total = source_total if source_total is not None else len(matched) + len(unmapped)

    lines = [
        f"# Control Mapping: {mapping.source_framework} -> {mapping.target_framework}",
        "",
        f"**Generated:** {mapping.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Completeness:** {mapping.completeness:.2f}",
    ]
    if compatibility is not None:
        lines.append(f"**Historical compatibility (reference prior):** {compatibility:.2f}")
    lines.append(f"**Mapped source controls:** {len(matched)} of {total}")
    lines.append("")

    lines.append("## Mappings")
    lines.append("")
    if matched:
        lines.append("| Source | Targets | Confidence |")
        lines.append("|---|---|---|")
        for m in matched:
            source = m.source_control_id
            if m.source_control_title and m.source_control_title != m.source_control_id:
                source = f"{m.source_control_id} {m.source_control_title}"
            targets = "<br>".join(
                tid if tid == title else f"{tid} {title}"
                for tid, title in zip(m.target_control_ids, m.target_control_titles)
            )
            lines.append(f"| {_cell(source)} | {_cell(targets)} | {m.confidence_score:.2f} |")
    else:
        lines.append("_No source control matched a target control above the threshold._")
    lines.append("")

    lines.append("## Unmapped Controls")
    lines.append("")
    if unmapped:
        lines.append(f"{len(unmapped)} of {total} source controls unmapped:")
        lines.append("")
        lines.extend(f"- {_cell(u)}" for u in unmapped)
    else:
        lines.append("All source controls were mapped.")
    lines.append("")

    return "\n".join(lines)
