"""
Import source and import-run schemas.

Sources:   GET/POST /sources                      → SourceCreate → SourceOut
Worklogs:  POST /sources/{id}/import/worklogs     → WorklogImportRequest → ImportResultOut
Files:     POST /sources/{id}/import/file         → multipart        → ImportResultOut
Yesterday: POST /sources/import/yesterday         →                  → list[SourceImportOut]
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.import_source import SourceType


class SourceCreate(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=128, examples=["Tempo (main)"])]
    source_type: SourceType = Field(description="`tempo` for the worklog API, `upload` for files.")
    api_token: Optional[str] = Field(default=None, description="Bearer token for API sources.")
    base_url: Optional[str] = Field(
        default=None,
        description="Overrides the default worklog API base URL.",
        examples=["https://api.tempo.io/4"],
    )
    poll_schedule: Optional[str] = Field(default=None, examples=["0 6 * * *"])
    is_enabled: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("name must not be empty after stripping whitespace")
        return stripped


class SourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    source_type: SourceType
    base_url: Optional[str] = None
    poll_schedule: Optional[str] = None
    is_enabled: bool
    created_at: Optional[datetime] = None
    last_polled_at: Optional[datetime] = None
    has_api_token: bool = False
    entry_count: int = 0
    pending_count: int = 0


class WorklogImportRequest(BaseModel):
    date_from: date = Field(examples=["2024-03-01"])
    date_to: date = Field(examples=["2024-03-31"])

    @model_validator(mode="after")
    def check_range(self) -> "WorklogImportRequest":
        if self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self


class ImportResultOut(BaseModel):
    """Outcome of one import run. Row/record problems are listed in `errors`."""
    model_config = ConfigDict(from_attributes=True)

    total: int = Field(description="Candidate records read from the source.")
    imported: int = Field(description="New entries persisted as pending.")
    skipped: int = Field(description="Records already imported earlier.")
    errors: list[str] = Field(default_factory=list)


class SourceImportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source_id: int
    source_name: str
    result: Optional[ImportResultOut] = None
    error: Optional[str] = None
