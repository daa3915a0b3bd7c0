"""
Submission schemas.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.submission import SubmissionStatus


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    imported_entry_id: int
    external_id: Optional[str] = Field(default=None, description="Timelog confirmation id.")
    status: SubmissionStatus
    submitted_at: datetime
    error_message: Optional[str] = None
    attempt_count: int
    work_date: Optional[date] = None
    user_identifier: Optional[str] = None


class SubmitSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attempted: int
    succeeded: int
    failed: int
    skipped: int
