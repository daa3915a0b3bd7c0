"""
Manual entry actions from the admin UI: list, ignore, map by hand.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.core.errors import (
    EntryNotFoundError,
    InactiveTargetError,
    InvalidEntryStatusError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from app.models.entry import EntryStatus, ImportedEntry
from app.models.project import TimelogProject
from app.models.task import TimelogTask


def get_entry(db: Session, entry_id: int) -> ImportedEntry:
    entry = db.get(ImportedEntry, entry_id)
    if entry is None:
        raise EntryNotFoundError(entry_id)
    return entry


def list_unmapped(db: Session, limit: int = 500) -> list[ImportedEntry]:
    return (
        db.query(ImportedEntry)
        .options(selectinload(ImportedEntry.import_source))
        .filter(ImportedEntry.status.in_((EntryStatus.pending, EntryStatus.failed)))
        .order_by(ImportedEntry.work_date.desc(), ImportedEntry.id.desc())
        .limit(limit)
        .all()
    )


def _require_pending(entry: ImportedEntry, action: str) -> None:
    if EntryStatus(entry.status) != EntryStatus.pending:
        raise InvalidEntryStatusError(entry.id, EntryStatus(entry.status).value, action)


def ignore_entry(db: Session, entry_id: int) -> ImportedEntry:
    entry = get_entry(db, entry_id)
    _require_pending(entry, "ignored")
    entry.status = EntryStatus.ignored
    db.commit()
    db.refresh(entry)
    return entry


def resolve_target(
    db: Session, project_id: int, task_id: Optional[int]
) -> tuple[TimelogProject, Optional[TimelogTask]]:
    """Load an assignment target, refusing unknown or retired projects/tasks."""
    project = db.get(TimelogProject, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    if not project.is_active:
        raise InactiveTargetError("project", project_id)

    task = None
    if task_id is not None:
        task = db.get(TimelogTask, task_id)
        if task is None or task.timelog_project_id != project.id:
            raise TaskNotFoundError(task_id, project_id)
        if not task.is_active:
            raise InactiveTargetError("task", task_id)
    return project, task


def manual_map(
    db: Session, entry_id: int, project_id: int, task_id: Optional[int] = None
) -> ImportedEntry:
    entry = get_entry(db, entry_id)
    _require_pending(entry, "mapped")
    project, task = resolve_target(db, project_id, task_id)
    entry.status = EntryStatus.mapped
    entry.mapping_rule_id = None
    entry.timelog_project_id = project.id
    entry.timelog_task_id = task.id if task else None
    db.commit()
    db.refresh(entry)
    return entry
