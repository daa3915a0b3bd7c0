"""
Timelog taxonomy router.

GET  /taxonomy/projects  — mirrored projects with their tasks
POST /taxonomy/sync      — refresh the mirror from Timelog
"""
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from app.clients.timelog import TimelogClient, get_timelog_client
from app.core.errors import UpstreamServiceError
from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.models.project import TimelogProject
from app.schemas.taxonomy import ProjectListOut, ProjectOut, SyncResultOut
from app.services import taxonomy_sync

router = APIRouter(prefix="/taxonomy", tags=["taxonomy"])


@router.get("/projects", response_model=ProjectListOut, summary="List Timelog projects and tasks")
def list_projects(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    query = db.query(TimelogProject).options(selectinload(TimelogProject.tasks))
    if not include_inactive:
        query = query.filter(TimelogProject.is_active == True)  # noqa: E712
    projects = query.order_by(TimelogProject.name).all()
    return ProjectListOut(
        last_synced_at=taxonomy_sync.last_synced_at(db),
        projects=[ProjectOut.model_validate(p) for p in projects],
    )


@router.post(
    "/sync",
    response_model=SyncResultOut,
    summary="Sync projects and tasks from Timelog",
    responses={502: {"model": ErrorResponse, "description": "Timelog request failed."}},
)
def sync(
    db: Session = Depends(get_db),
    client: TimelogClient = Depends(get_timelog_client),
):
    try:
        result = taxonomy_sync.sync_taxonomy(db, client)
    except httpx.HTTPError as exc:
        db.rollback()
        raise UpstreamServiceError("Timelog", str(exc) or type(exc).__name__) from exc
    return SyncResultOut.model_validate(result)
