"""
Import sources router.

GET  /sources                          — list sources with entry counts
POST /sources                          — register a source
POST /sources/{id}/import/file         — import a CSV/XLSX upload
POST /sources/{id}/import/worklogs     — import a date range from the worklog API
POST /sources/import/yesterday         — previous-day import for every worklog source
"""
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import UploadTooLargeError, UpstreamServiceError
from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.models.import_source import ImportSource
from app.schemas.sources import (
    ImportResultOut,
    SourceCreate,
    SourceImportOut,
    SourceOut,
    WorklogImportRequest,
)
from app.services import ingest, sources
from app.services.ingest import ImportResult, SourceImportOutcome

router = APIRouter(prefix="/sources", tags=["sources"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _source_out(source: ImportSource, entry_count: int = 0, pending_count: int = 0) -> SourceOut:
    return SourceOut(
        id=source.id,
        name=source.name,
        source_type=source.source_type,
        base_url=source.base_url,
        poll_schedule=source.poll_schedule,
        is_enabled=source.is_enabled,
        created_at=source.created_at,
        last_polled_at=source.last_polled_at,
        has_api_token=bool(source.api_token),
        entry_count=entry_count,
        pending_count=pending_count,
    )


def _result_out(result: ImportResult) -> ImportResultOut:
    return ImportResultOut.model_validate(result)


def _outcome_out(outcome: SourceImportOutcome) -> SourceImportOut:
    return SourceImportOut(
        source_id=outcome.source_id,
        source_name=outcome.source_name,
        result=_result_out(outcome.result) if outcome.result else None,
        error=outcome.error,
    )


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

@router.get("", response_model=list[SourceOut], summary="List import sources")
def list_sources(db: Session = Depends(get_db)):
    return [_source_out(s.source, s.entry_count, s.pending_count) for s in sources.list_sources(db)]


@router.post(
    "",
    response_model=SourceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register an import source",
    responses={409: {"model": ErrorResponse, "description": "A source with that name already exists."}},
)
def create_source(payload: SourceCreate, db: Session = Depends(get_db)):
    source = sources.create_source(
        db,
        name=payload.name,
        source_type=payload.source_type,
        api_token=payload.api_token,
        base_url=payload.base_url,
        poll_schedule=payload.poll_schedule,
        is_enabled=payload.is_enabled,
    )
    return _source_out(source)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

@router.post(
    "/{source_id}/import/file",
    response_model=ImportResultOut,
    summary="Import a CSV or XLSX file",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown source."},
        409: {"model": ErrorResponse, "description": "Source is not an upload source."},
        413: {"model": ErrorResponse, "description": "File too large."},
    },
)
def import_file(
    source_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Parse the upload and persist every new row as a pending entry.

    Rows that cannot be parsed are reported in `errors` as `Row N: ...`;
    the remaining rows are still imported. Re-uploading the same file
    imports nothing new.
    """
    content = file.file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(content) > settings.UPLOAD_MAX_BYTES:
        raise UploadTooLargeError(settings.UPLOAD_MAX_BYTES)
    result = ingest.import_file(db, source_id, content, file.filename or "upload.csv")
    return _result_out(result)


@router.post(
    "/{source_id}/import/worklogs",
    response_model=ImportResultOut,
    summary="Import worklogs for a date range",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown source."},
        409: {"model": ErrorResponse, "description": "Source is not a worklog source."},
        502: {"model": ErrorResponse, "description": "The worklog API failed."},
    },
)
def import_worklogs(
    source_id: int,
    payload: WorklogImportRequest,
    db: Session = Depends(get_db),
):
    try:
        result = ingest.import_worklogs(db, source_id, payload.date_from, payload.date_to)
    except httpx.HTTPError as exc:
        raise UpstreamServiceError("Worklog API", str(exc) or type(exc).__name__) from exc
    return _result_out(result)


@router.post(
    "/import/yesterday",
    response_model=list[SourceImportOut],
    summary="Import yesterday's worklogs for every enabled worklog source",
)
def import_yesterday(db: Session = Depends(get_db)):
    """One item per source; a failing source reports `error` and does not stop the others."""
    return [_outcome_out(o) for o in ingest.import_yesterday(db)]
