"""Reference control catalog.

Framework definitions ship as YAML under grcmap/data/frameworks and are
loaded read-only. Every query below returns copies; nothing here mutates the
loaded definitions.
"""

from __future__ import annotations

from collections import Counter
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Optional

import yaml

from ..models.control import Control, FrameworkCategory, FrameworkDefinition, FrameworkStats

DEFAULT_FRAMEWORK = "ISO 27001:2022"


def _load_definition(text: str) -> Optional[FrameworkDefinition]:
    content = yaml.safe_load(text)
    if not isinstance(content, dict) or not content.get("name"):
        return None
    definition = FrameworkDefinition.model_validate(content)
    definition.aliases = [a.lower() for a in definition.aliases]
    return definition


@lru_cache(maxsize=None)
def _builtin_frameworks() -> tuple[FrameworkDefinition, ...]:
    data_pkg = resources.files("grcmap.data.frameworks")
    frameworks: list[FrameworkDefinition] = []
    for entry in sorted(data_pkg.iterdir(), key=lambda e: e.name):
        if not entry.name.endswith((".yaml", ".yml")):
            continue
        definition = _load_definition(entry.read_text(encoding="utf-8"))
        if definition:
            frameworks.append(definition)
    return tuple(frameworks)


def load_frameworks_from_dir(catalog_dir: Path) -> list[FrameworkDefinition]:
    """Load every framework YAML file found under a directory."""
    frameworks: list[FrameworkDefinition] = []
    if not catalog_dir.exists():
        return frameworks
    for yaml_file in sorted(catalog_dir.rglob("*.y*ml")):
        definition = _load_definition(yaml_file.read_text(encoding="utf-8"))
        if definition:
            frameworks.append(definition)
    return frameworks


def _all_frameworks(catalog_dir: Optional[Path] = None) -> list[FrameworkDefinition]:
    frameworks = list(_builtin_frameworks())
    if catalog_dir is not None:
        frameworks.extend(load_frameworks_from_dir(catalog_dir))
    return frameworks


def _find(name: str, catalog_dir: Optional[Path] = None) -> Optional[FrameworkDefinition]:
    needle = name.lower()
    for definition in _all_frameworks(catalog_dir):
        if needle == definition.name.lower():
            return definition
        if any(alias in needle for alias in definition.aliases):
            return definition
    return None


def get_framework(name: str, catalog_dir: Optional[Path] = None) -> Optional[FrameworkDefinition]:
    """Look up a framework by name.

    Matches the exact name, or any name containing one of the framework's
    aliases (case-insensitive), so "ISO 27001", "iso27001 annex a" and
    "ISO 27001:2022" all resolve to the same definition.
    """
    definition = _find(name, catalog_dir)
    return definition.model_copy(deep=True) if definition else None


def list_frameworks(catalog_dir: Optional[Path] = None) -> list[str]:
    """List the names of all available frameworks."""
    return [d.name for d in _all_frameworks(catalog_dir)]


def _controls(framework_name: str, catalog_dir: Optional[Path] = None) -> list[Control]:
    definition = _find(framework_name, catalog_dir)
    if not definition:
        return []
    return [c.model_copy(deep=True) for c in definition.controls]


def get_control(
    control_id: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> Optional[Control]:
    return next((c for c in _controls(framework_name, catalog_dir) if c.id == control_id), None)


def get_controls_by_category(
    category: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[Control]:
    return [c for c in _controls(framework_name, catalog_dir) if c.category == category]


def get_controls_by_criticality(
    criticality: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[Control]:
    return [c for c in _controls(framework_name, catalog_dir) if c.criticality == criticality]


def get_controls_by_type(
    control_type: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[Control]:
    return [c for c in _controls(framework_name, catalog_dir) if c.control_type == control_type]


def search_controls(
    keyword: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[Control]:
    """Case-insensitive substring search across control id, title and description."""
    needle = keyword.lower()
    return [
        c for c in _controls(framework_name, catalog_dir)
        if needle in c.id.lower()
        or needle in c.title.lower()
        or needle in c.description.lower()
    ]


def get_framework_categories(
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[FrameworkCategory]:
    """Get all categories of a framework with control counts recomputed."""
    definition = _find(framework_name, catalog_dir)
    if not definition:
        return []
    counts = Counter(c.category for c in definition.controls)
    return [
        category.model_copy(update={"control_count": counts.get(category.id, 0)})
        for category in definition.categories
    ]


def get_category_details(
    category_id: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> Optional[FrameworkCategory]:
    return next(
        (c for c in get_framework_categories(framework_name, catalog_dir) if c.id == category_id),
        None,
    )


def get_control_hierarchy(control_id: str) -> dict[str, Optional[str]]:
    """Decompose a dotted control id into up to three levels.

    e.g. A.5.1.1 belongs to A.5.1 which belongs to A.5
    """
    parts = control_id.split(".")
    return {
        "level1": ".".join(parts[:2]),
        "level2": ".".join(parts[:3]) if len(parts) > 2 else None,
        "level3": control_id if len(parts) > 3 else None,
        "full": control_id,
    }


def get_related_controls(
    control_id: str,
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> list[Control]:
    controls = _controls(framework_name, catalog_dir)
    control = next((c for c in controls if c.id == control_id), None)
    if not control or not control.related_controls:
        return []
    related = set(control.related_controls)
    return [c for c in controls if c.id in related]


def get_framework_stats(
    framework_name: str = DEFAULT_FRAMEWORK,
    catalog_dir: Optional[Path] = None,
) -> FrameworkStats:
    """Count controls grouped by category, type and criticality."""
    return FrameworkStats.from_controls(_controls(framework_name, catalog_dir))
