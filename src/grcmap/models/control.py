"""Framework and control data models."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ControlType(str, Enum):
    TECHNICAL = "technical"
    OPERATIONAL = "operational"
    MANAGEMENT = "management"


class Criticality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


CONTROL_TYPES: frozenset[str] = frozenset(t.value for t in ControlType)
CRITICALITIES: frozenset[str] = frozenset(c.value for c in Criticality)


class Control(BaseModel):
    """A single compliance requirement within a framework.

    ``control_type`` and ``criticality`` are kept as plain strings so that
    malformed imports survive parsing and can be itemized by the validator.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    category: str = ""
    title: str = ""
    description: str = ""
    control_type: str = Field(default=ControlType.OPERATIONAL.value, alias="controlType")
    criticality: Optional[str] = None
    related_controls: Optional[list[str]] = Field(default=None, alias="relatedControls")
    objectives: Optional[list[str]] = None

    def is_valid_control_type(self) -> bool:
        return self.control_type in CONTROL_TYPES

    def search_text(self) -> str:
        """Title and description joined, as fed to the control mapper."""
        return f"{self.title} {self.description}".strip()


class FrameworkCategory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    control_count: int = Field(default=0, alias="controlCount")


class ParsedFramework(BaseModel):
    """Output of a document ingestion."""

    name: str = ""
    version: str = "1.0"
    description: str = ""
    source: str = ""
    controls: list[Control] = []
    metadata: dict = {}


class FrameworkDefinition(BaseModel):
    """A reference framework shipped with the control catalog."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str = ""
    description: str = ""
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    aliases: list[str] = []
    categories: list[FrameworkCategory] = []
    controls: list[Control] = []


class ValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: list[str] = []


class FrameworkStats(BaseModel):
    total_controls: int = 0
    by_category: dict[str, int] = {}
    by_type: dict[str, int] = {}
    by_criticality: dict[str, int] = {}

    @classmethod
    def from_controls(cls, controls: list[Control]) -> "FrameworkStats":
        return cls(
            total_controls=len(controls),
            by_category=dict(Counter(c.category for c in controls)),
            by_type=dict(Counter(c.control_type for c in controls)),
            by_criticality=dict(Counter(c.criticality for c in controls if c.criticality)),
        )


class IngestionResult(BaseModel):
    """A parsed, validated framework ready to hand to the data layer."""

    framework_id: str
    framework: ParsedFramework
    categories: list[FrameworkCategory] = []
    stats: FrameworkStats = FrameworkStats()
    validation: ValidationResult
