"""Control mapping engine.

Aligns controls across frameworks (ISO 27001, NIST CSF, SOC 2, custom sets)
by Jaccard similarity over extracted description keywords.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..core.config import DEFAULT_STOP_WORDS
from ..models.control import FrameworkDefinition, ParsedFramework
from ..models.mapping import ControlMapping, FrameworkMapping

MATCH_REASONING = "Matched based on semantic similarity to control scope"
NO_MATCH_REASONING = "No target control exceeded the similarity threshold"


@dataclass(frozen=True)
class MappingSettings:
    """Tunable matching parameters."""

    threshold: float = 0.3
    max_matches: int = 3
    min_token_length: int = 4
    stop_words: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_STOP_WORDS))
    # Emit zero-confidence entries for sources with no qualifying target
    # instead of dropping them.
    include_unmatched: bool = False

    @classmethod
    def from_config(cls, config: dict) -> "MappingSettings":
        mapping = config.get("mapping", {}) or {}
        defaults = cls()
        stop_words = mapping.get("stop_words")
        return cls(
            threshold=float(mapping.get("threshold", defaults.threshold)),
            max_matches=int(mapping.get("max_matches", defaults.max_matches)),
            min_token_length=int(mapping.get("min_token_length", defaults.min_token_length)),
            stop_words=frozenset(w.lower() for w in stop_words) if stop_words is not None else defaults.stop_words,
            include_unmatched=bool(mapping.get("include_unmatched", defaults.include_unmatched)),
        )


DEFAULT_SETTINGS = MappingSettings()


@dataclass
class Match:
    id: str
    title: str
    score: float


def extract_keywords(text: str, settings: MappingSettings = DEFAULT_SETTINGS) -> set[str]:
    """Extract the keyword set of a control description.

    Tokens are length-filtered before non-alphanumerics are stripped, so a
    token like "key," survives as "key" only when the raw token was long
    enough.
    """
    words = [
        re.sub(r"[^a-z0-9]", "", w)
        for w in text.lower().split()
        if len(w) >= settings.min_token_length
    ]
    return {w for w in words if w not in settings.stop_words}


def calculate_similarity(set1: set[str], set2: set[str]) -> float:
    """Jaccard similarity between two keyword sets."""
    if not set1 and not set2:
        return 1.0

    union = set1 | set2
    if not union:
        return 0.0

    return len(set1 & set2) / len(union)


def _rank(
    source_keywords: set[str],
    candidates: list[tuple[str, str, set[str]]],
    settings: MappingSettings,
) -> list[Match]:
    matches = [
        Match(id=cid, title=title, score=calculate_similarity(source_keywords, keywords))
        for cid, title, keywords in candidates
    ]
    qualifying = [m for m in matches if m.score > settings.threshold]
    qualifying.sort(key=lambda m: m.score, reverse=True)
    return qualifying[: settings.max_matches]


def find_best_matches(
    source_control: str,
    target_controls: list[str],
    settings: MappingSettings = DEFAULT_SETTINGS,
) -> list[Match]:
    """Score every target and keep the top matches above the threshold."""
    candidates = [(t, t, extract_keywords(t, settings)) for t in target_controls]
    return _rank(extract_keywords(source_control, settings), candidates, settings)


def map_controls(
    source_controls: list[str],
    target_controls: list[str],
    settings: Optional[MappingSettings] = None,
) -> list[ControlMapping]:
    """Map source controls to target framework controls.

    Each input string is one control's descriptive text. Sources without a
    qualifying target produce no entry unless settings.include_unmatched is
    set, in which case they produce a zero-confidence entry with no targets.
    """
    settings = settings or DEFAULT_SETTINGS
    mappings: list[ControlMapping] = []

    for source in source_controls:
        matches = find_best_matches(source, target_controls, settings)

        if matches:
            mappings.append(ControlMapping(
                source_control_id=source,
                source_control_title=source,
                target_control_ids=[m.id for m in matches],
                target_control_titles=[m.title for m in matches],
                confidence_score=matches[0].score,
                reasoning=MATCH_REASONING,
            ))
        elif settings.include_unmatched:
            mappings.append(ControlMapping(
                source_control_id=source,
                source_control_title=source,
                confidence_score=0.0,
                reasoning=NO_MATCH_REASONING,
            ))

    return mappings


def create_framework_mapping(
    source_framework: str,
    target_framework: str,
    control_mappings: list[ControlMapping],
    unmapped: Optional[list[str]] = None,
) -> FrameworkMapping:
    """Wrap control mappings into a framework mapping with mean confidence."""
    completeness = (
        sum(m.confidence_score for m in control_mappings) / len(control_mappings)
        if control_mappings
        else 0.0
    )

    return FrameworkMapping(
        source_framework=source_framework,
        target_framework=target_framework,
        mappings=control_mappings,
        completeness=round(completeness, 2),
        timestamp=datetime.now(),
        unmapped_controls=list(unmapped or []),
    )


FrameworkLike = Union[ParsedFramework, FrameworkDefinition]


def map_frameworks(
    source: FrameworkLike,
    target: FrameworkLike,
    settings: Optional[MappingSettings] = None,
) -> FrameworkMapping:
    """Map two structured frameworks control-by-control.

    Each control is matched on its title and description; the resulting
    entries carry the real control ids and titles rather than the matched
    text. Source controls without a match are listed in unmapped_controls.
    """
    settings = settings or DEFAULT_SETTINGS

    candidates = [
        (c.id, c.title, extract_keywords(c.search_text(), settings))
        for c in target.controls
    ]
    control_mappings: list[ControlMapping] = []
    unmapped: list[str] = []

    for control in source.controls:
        matches = _rank(extract_keywords(control.search_text(), settings), candidates, settings)

        if matches:
            control_mappings.append(ControlMapping(
                source_control_id=control.id,
                source_control_title=control.title,
                target_control_ids=[m.id for m in matches],
                target_control_titles=[m.title for m in matches],
                confidence_score=matches[0].score,
                reasoning=MATCH_REASONING,
            ))
            continue

        unmapped.append(control.id)
        if settings.include_unmatched:
            control_mappings.append(ControlMapping(
                source_control_id=control.id,
                source_control_title=control.title,
                confidence_score=0.0,
                reasoning=NO_MATCH_REASONING,
            ))

    return create_framework_mapping(source.name, target.name, control_mappings, unmapped)
