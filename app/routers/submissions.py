"""
Submissions router.

GET  /submissions               — audit history, newest first
POST /submissions/run           — submit every mapped/failed entry
POST /submissions/entries/{id}  — submit one entry
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.clients.timelog import TimelogClient, get_timelog_client
from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.models.submission import SubmittedEntry
from app.schemas.submissions import SubmissionOut, SubmitSummaryOut
from app.services import submission

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _submission_out(record: SubmittedEntry) -> SubmissionOut:
    entry = record.entry
    return SubmissionOut(
        id=record.id,
        imported_entry_id=record.imported_entry_id,
        external_id=record.external_id,
        status=record.status,
        submitted_at=record.submitted_at,
        error_message=record.error_message,
        attempt_count=record.attempt_count,
        work_date=entry.work_date if entry else None,
        user_identifier=entry.user_identifier if entry else None,
    )


@router.get("", response_model=list[SubmissionOut], summary="Submission history")
def list_submissions(
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    return [_submission_out(r) for r in submission.recent_submissions(db, limit=limit)]


@router.post("/run", response_model=SubmitSummaryOut, summary="Submit all mapped entries")
def run_submissions(
    db: Session = Depends(get_db),
    client: TimelogClient = Depends(get_timelog_client),
):
    """
    Books every mapped (or previously failed) entry that has a task.
    Each entry is committed on its own; failures are recorded, not raised.
    """
    return SubmitSummaryOut.model_validate(submission.submit_all_pending(db, client))


@router.post(
    "/entries/{entry_id}",
    response_model=Optional[SubmissionOut],
    summary="Submit a single entry",
    responses={
        204: {"description": "Entry has no task assigned; nothing was sent."},
        404: {"model": ErrorResponse, "description": "Unknown entry."},
        409: {"model": ErrorResponse, "description": "Entry is not mapped or failed."},
    },
)
def submit_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    client: TimelogClient = Depends(get_timelog_client),
):
    record = submission.submit_entry(db, entry_id, client)
    if record is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return _submission_out(record)
