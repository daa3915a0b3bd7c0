"""
Timelog project/task mirror schemas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    name: str
    is_active: bool


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    last_synced_at: Optional[datetime] = None
    tasks: list[TaskOut] = []


class ProjectListOut(BaseModel):
    last_synced_at: Optional[datetime] = None
    projects: list[ProjectOut]


class SyncResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    projects: int
    tasks: int
    stale_projects: int
    stale_tasks: int
