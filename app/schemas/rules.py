"""
Mapping rule schemas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.import_source import SourceType
from app.models.rule import MatchOperator
from app.schemas.entries import EntryOut


class RuleIn(BaseModel):
    """Body of rule create and update."""
    name: Annotated[str, Field(min_length=1, max_length=128)]
    source_type: Optional[SourceType] = Field(
        default=None, description="Restrict to one source type; null applies to all."
    )
    match_field: Annotated[str, Field(
        min_length=1,
        max_length=128,
        description="Entry field, or `metadata.<key>` for a metadata value.",
        examples=["project_key", "metadata.customfield_10200"],
    )]
    match_operator: MatchOperator
    match_value: Annotated[str, Field(max_length=512, examples=["ACME"])]
    timelog_project_id: int
    timelog_task_id: Optional[int] = None
    priority: int = Field(default=0, description="Lower runs first.")

    @field_validator("name", "match_field", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("must not be empty after stripping whitespace")
        return stripped


class RuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    source_type: Optional[SourceType] = None
    match_field: str
    match_operator: MatchOperator
    match_value: str
    timelog_project_id: int
    timelog_task_id: Optional[int] = None
    priority: int
    is_enabled: bool
    created_at: Optional[datetime] = None


class RuleEnabledRequest(BaseModel):
    is_enabled: bool


class RuleMoveRequest(BaseModel):
    direction: Literal["up", "down"]


class RulePreviewOut(BaseModel):
    rule_id: int
    match_count: int
    entries: list[EntryOut]


class RuleApplyOut(BaseModel):
    mapped: int = Field(description="Entries moved from pending to mapped.")
