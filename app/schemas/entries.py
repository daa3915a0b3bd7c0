"""
Entry schemas for the review queue.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.entry import EntryStatus


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    import_source_id: int
    external_id: str
    user_identifier: str
    work_date: date
    duration_seconds: int
    description: Optional[str] = None
    project_key: Optional[str] = None
    issue_key: Optional[str] = None
    activity: Optional[str] = None
    metadata_json: Optional[str] = None
    status: EntryStatus
    imported_at: Optional[datetime] = None
    mapping_rule_id: Optional[int] = None
    timelog_project_id: Optional[int] = None
    timelog_task_id: Optional[int] = None


class ManualMapRequest(BaseModel):
    timelog_project_id: int = Field(description="Local id of an active Timelog project.")
    timelog_task_id: Optional[int] = Field(
        default=None, description="Local id of an active task within that project."
    )
