"""Structural validation of parsed frameworks.

validate_framework never raises: every problem is itemized in the returned
ValidationResult and the caller decides whether to block the import.
"""

from __future__ import annotations

from collections import Counter
from typing import Optional, Union

from ..models.control import (
    CONTROL_TYPES,
    CRITICALITIES,
    Control,
    ControlType,
    ParsedFramework,
    ValidationResult,
)


def _control_from_dict(entry: dict) -> Control:
    def text(*keys: str) -> str:
        for key in keys:
            if entry.get(key) is not None:
                return str(entry[key])
        return ""

    criticality = entry.get("criticality")
    return Control(
        id=text("id", "control_id"),
        category=text("category"),
        title=text("title"),
        control_type=text("controlType", "control_type") or ControlType.OPERATIONAL.value,
        criticality=str(criticality) if criticality is not None else None,
    )


def _coerce(framework: Union[ParsedFramework, dict]) -> tuple[str, list[Control]]:
    if isinstance(framework, ParsedFramework):
        return framework.name, list(framework.controls)

    raw = framework.get("controls")
    controls: list[Control] = []
    for entry in raw if isinstance(raw, list) else []:
        if isinstance(entry, Control):
            controls.append(entry)
        elif isinstance(entry, dict):
            controls.append(_control_from_dict(entry))
        else:
            controls.append(Control(control_type=""))
    return str(framework.get("name") or ""), controls


def _label(control: Control, position: int) -> str:
    return control.id if control.id else f"#{position}"


def validate_framework(
    framework: Union[ParsedFramework, dict],
    strict: bool = False,
    categories: Optional[list[str]] = None,
) -> ValidationResult:
    """Check a framework for structural completeness.

    Checks run in order and accumulate: framework name, at least one
    control, then per control its id, title, category, control type and
    (when set) criticality. With strict=True, duplicate control ids and
    categories outside the given category list are reported too.
    """
    errors: list[str] = []
    name, controls = _coerce(framework)

    if not name.strip():
        errors.append("Framework name is required")

    if not controls:
        errors.append("Framework must contain at least one control")

    for position, control in enumerate(controls, start=1):
        label = _label(control, position)
        if not control.id.strip():
            errors.append(f"Control #{position} is missing an ID")
        if not control.title.strip():
            errors.append(f"Control {label} is missing a title")
        if not control.category.strip():
            errors.append(f"Control {label} is missing a category")
        if not control.is_valid_control_type():
            errors.append(
                f"Control {label} has invalid control type '{control.control_type}' "
                f"(expected one of: {', '.join(sorted(CONTROL_TYPES))})"
            )
        if control.criticality is not None and control.criticality not in CRITICALITIES:
            errors.append(f"Control {label} has invalid criticality '{control.criticality}'")

    if strict:
        counts = Counter(c.id for c in controls if c.id)
        for control_id, count in counts.items():
            if count > 1:
                errors.append(f"Control ID {control_id} appears {count} times")

        if categories is not None:
            known = set(categories)
            for position, control in enumerate(controls, start=1):
                if control.category and control.category not in known:
                    errors.append(
                        f"Control {_label(control, position)} references unknown category '{control.category}'"
                    )

    return ValidationResult(is_valid=not errors, errors=errors)
