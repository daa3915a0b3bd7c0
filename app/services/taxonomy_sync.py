"""
Mirror Timelog's project/task lists into the local taxonomy tables.

Upsert by external id; anything Timelog no longer returns is marked
inactive rather than deleted, so historical assignments stay valid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.clients.timelog import TimelogClient, TimelogProjectDTO
from app.models.project import TimelogProject
from app.models.task import TimelogTask

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    projects: int = 0
    tasks: int = 0
    stale_projects: int = 0
    stale_tasks: int = 0


def _upsert_project(db: Session, dto: TimelogProjectDTO, synced_at: datetime) -> TimelogProject:
    external_id = str(dto.project_id)
    project = (
        db.query(TimelogProject)
        .filter(TimelogProject.external_id == external_id)
        .one_or_none()
    )
    if project is None:
        project = TimelogProject(external_id=external_id, name=dto.name)
        db.add(project)
    project.name = dto.name
    project.description = dto.description
    project.is_active = True
    project.last_synced_at = synced_at
    db.flush()
    return project


def _sync_tasks(
    db: Session,
    client: TimelogClient,
    project: TimelogProject,
    external_project_id: int,
    synced_at: datetime,
    result: SyncResult,
) -> None:
    dtos = client.get_tasks(external_project_id)
    existing = {
        t.external_id: t
        for t in db.query(TimelogTask).filter(TimelogTask.timelog_project_id == project.id).all()
    }
    returned: set[str] = set()
    for dto in dtos:
        external_id = str(dto.task_id)
        returned.add(external_id)
        task = existing.get(external_id)
        if task is None:
            task = TimelogTask(
                timelog_project_id=project.id, external_id=external_id, name=dto.name,
            )
            db.add(task)
        task.name = dto.name
        task.is_active = dto.is_active
        task.last_synced_at = synced_at
        result.tasks += 1

    for external_id, task in existing.items():
        if task.is_active and external_id not in returned:
            task.is_active = False
            task.last_synced_at = synced_at
            result.stale_tasks += 1


def sync_taxonomy(db: Session, client: TimelogClient) -> SyncResult:
    logger.info("Starting Timelog project/task sync")
    synced_at = datetime.now(tz=timezone.utc)
    result = SyncResult()

    dtos = client.get_projects()
    logger.info("Fetched %d projects from Timelog", len(dtos))
    for dto in dtos:
        project = _upsert_project(db, dto, synced_at)
        _sync_tasks(db, client, project, dto.project_id, synced_at, result)
        result.projects += 1

    returned = {str(dto.project_id) for dto in dtos}
    stale = (
        db.query(TimelogProject)
        .filter(TimelogProject.is_active == True)  # noqa: E712
        .all()
    )
    for project in stale:
        if project.external_id not in returned:
            project.is_active = False
            project.last_synced_at = synced_at
            result.stale_projects += 1

    db.commit()
    logger.info(
        "Timelog sync complete: %d projects, %d tasks, %d projects marked inactive",
        result.projects, result.tasks, result.stale_projects,
    )
    return result


def last_synced_at(db: Session) -> Optional[datetime]:
    return db.query(func.max(TimelogProject.last_synced_at)).scalar()
