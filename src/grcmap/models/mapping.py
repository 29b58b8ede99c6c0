"""Control mapping data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ControlMapping(BaseModel):
    """One source control matched to its ranked target controls."""

    model_config = ConfigDict(populate_by_name=True)

    source_control_id: str = Field(alias="sourceControlId")
    source_control_title: str = Field(alias="sourceControlTitle")
    target_control_ids: list[str] = Field(default=[], alias="targetControlIds")
    target_control_titles: list[str] = Field(default=[], alias="targetControlTitles")
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0, alias="confidenceScore")
    reasoning: str = ""


class FrameworkMapping(BaseModel):
    """Aggregate mapping result for a source/target framework pair."""

    model_config = ConfigDict(populate_by_name=True)

    source_framework: str = Field(alias="sourceFramework")
    target_framework: str = Field(alias="targetFramework")
    mappings: list[ControlMapping] = []
    completeness: float = 0.0
    timestamp: datetime
    unmapped_controls: list[str] = Field(default=[], alias="unmappedControls")
