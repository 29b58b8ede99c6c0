"""Historical cross-framework compatibility priors.

These are fixed reference scores between well-known frameworks. They are a
prior for when no live mapping has been computed and are never derived from
map_controls() output.
"""

from __future__ import annotations

import re
from typing import Optional

NEUTRAL_COMPATIBILITY = 0.5

COMMON_FRAMEWORK_MAPPINGS: dict[str, dict[str, float]] = {
    "ISO 27001": {
        "NIST CSF": 0.85,
        "CIS Controls": 0.78,
        "SOC2": 0.82,
    },
    "NIST CSF": {
        "ISO 27001": 0.85,
        "CIS Controls": 0.80,
        "SOC2": 0.88,
    },
    "CIS Controls": {
        "ISO 27001": 0.78,
        "NIST CSF": 0.80,
        "SOC2": 0.75,
    },
}


def _squash(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def resolve_table_name(name: str) -> Optional[str]:
    """Find the table key a full framework name refers to.

    "ISO 27001:2022" resolves to "ISO 27001" and "SOC 2 Type II" to "SOC2".
    Returns None when no key is a prefix of the name.
    """
    keys = set(COMMON_FRAMEWORK_MAPPINGS)
    for row in COMMON_FRAMEWORK_MAPPINGS.values():
        keys.update(row)
    squashed = _squash(name)
    for key in sorted(keys, key=len, reverse=True):
        if squashed.startswith(_squash(key)):
            return key
    return None


def get_framework_compatibility(source_framework: str, target_framework: str) -> float:
    """Look up the static compatibility score for a framework pair.

    Returns NEUTRAL_COMPATIBILITY when either name is unknown or the pair
    is absent from the table.
    """
    row = COMMON_FRAMEWORK_MAPPINGS.get(source_framework)
    if row is None:
        return NEUTRAL_COMPATIBILITY
    return row.get(target_framework, NEUTRAL_COMPATIBILITY)
