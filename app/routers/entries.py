"""
Entries router (review queue).

GET  /entries/unmapped     — pending and failed entries
POST /entries/{id}/ignore  — pending → ignored
POST /entries/{id}/map     — pending → mapped, by hand
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.schemas.entries import EntryOut, ManualMapRequest
from app.services import entries

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("/unmapped", response_model=list[EntryOut], summary="List entries awaiting review")
def list_unmapped(
    limit: int = Query(default=500, ge=1, le=5000),
    db: Session = Depends(get_db),
):
    return entries.list_unmapped(db, limit=limit)


@router.post(
    "/{entry_id}/ignore",
    response_model=EntryOut,
    summary="Ignore a pending entry",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown entry."},
        409: {"model": ErrorResponse, "description": "Entry is not pending."},
    },
)
def ignore_entry(entry_id: int, db: Session = Depends(get_db)):
    return entries.ignore_entry(db, entry_id)


@router.post(
    "/{entry_id}/map",
    response_model=EntryOut,
    summary="Assign a pending entry to a project/task by hand",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown entry, project or task."},
        409: {"model": ErrorResponse, "description": "Entry is not pending, or the target is inactive."},
    },
)
def map_entry(entry_id: int, payload: ManualMapRequest, db: Session = Depends(get_db)):
    return entries.manual_map(db, entry_id, payload.timelog_project_id, payload.timelog_task_id)
