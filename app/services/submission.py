"""
Submission service: books mapped entries in Timelog.

Public API
----------
submit(db, entry, client)          → SubmittedEntry | None
submit_entry(db, entry_id, client) → SubmittedEntry | None
submit_all_pending(db, client)     → SubmitSummary
recent_submissions(db, limit)      → list[SubmittedEntry]

Each entry is booked on its own and committed on its own, together with
its audit row. A failure is recorded on the entry (status `failed`) and
picked up again by the next run; nothing retries in-process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.clients.timelog import BookingRequest, BookingResponse, TimelogClient
from app.core.errors import EntryNotFoundError, InvalidEntryStatusError
from app.models.entry import EntryStatus, ImportedEntry
from app.models.submission import SubmissionStatus, SubmittedEntry
from app.models.task import TimelogTask

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = (EntryStatus.mapped, EntryStatus.failed)


@dataclass
class SubmitSummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_hours(duration_seconds: int) -> float:
    return round(duration_seconds / 3600.0, 2)


def build_booking(entry: ImportedEntry, task: TimelogTask) -> BookingRequest:
    return BookingRequest(
        task_id=int(task.external_id),
        date=entry.work_date.isoformat(),
        hours=to_hours(entry.duration_seconds),
        comment=entry.description,
    )


def _record_attempt(
    db: Session,
    entry: ImportedEntry,
    status: SubmissionStatus,
    confirmation_id: Optional[str] = None,
    error_message: Optional[str] = None,
) -> SubmittedEntry:
    """Create the audit row on first attempt, update it in place afterwards."""
    record = (
        db.query(SubmittedEntry)
        .filter(SubmittedEntry.imported_entry_id == entry.id)
        .one_or_none()
    )
    if record is None:
        record = SubmittedEntry(imported_entry_id=entry.id, attempt_count=0)
        db.add(record)
    record.attempt_count = (record.attempt_count or 0) + 1
    record.status = status
    record.submitted_at = _now()
    record.error_message = error_message
    if confirmation_id is not None:
        record.external_id = confirmation_id
    return record


def _describe_rejection(response: BookingResponse) -> str:
    return f"{response.status_code}: {response.body}"


def submit(db: Session, entry: ImportedEntry, client: TimelogClient) -> Optional[SubmittedEntry]:
    """Book one entry and persist the outcome.

    Returns the audit record, or None when the entry is not ready for
    submission (no task assigned, or the task row is gone).
    """
    if entry.timelog_task_id is None:
        logger.warning("Entry %s has no mapped Timelog task, skipping submission", entry.id)
        return None
    if EntryStatus(entry.status) not in SUBMITTABLE_STATUSES:
        raise InvalidEntryStatusError(entry.id, EntryStatus(entry.status).value, "submitted")

    task = db.get(TimelogTask, entry.timelog_task_id)
    if task is None:
        logger.error("Timelog task %s not found for entry %s", entry.timelog_task_id, entry.id)
        return None

    try:
        booking = build_booking(entry, task)
        response = client.create_time_registration(booking)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Exception submitting entry %s to Timelog", entry.id)
        entry.status = EntryStatus.failed
        record = _record_attempt(
            db, entry, SubmissionStatus.failed,
            error_message=str(exc) or type(exc).__name__,
        )
    else:
        if response.success:
            logger.info(
                "Submitted entry %s to Timelog (task %s, %s h)",
                entry.id, task.external_id, booking.hours,
            )
            entry.status = EntryStatus.submitted
            record = _record_attempt(
                db, entry, SubmissionStatus.success,
                confirmation_id=response.confirmation_id,
            )
        else:
            error = _describe_rejection(response)
            logger.warning("Timelog rejected entry %s: %s", entry.id, error)
            entry.status = EntryStatus.failed
            record = _record_attempt(db, entry, SubmissionStatus.failed, error_message=error)

    db.commit()
    return record


def submit_entry(db: Session, entry_id: int, client: TimelogClient) -> Optional[SubmittedEntry]:
    entry = db.get(ImportedEntry, entry_id)
    if entry is None:
        raise EntryNotFoundError(entry_id)
    return submit(db, entry, client)


def submit_all_pending(db: Session, client: TimelogClient) -> SubmitSummary:
    """Submit every mapped or failed entry that has a task, one at a time."""
    entry_ids = [
        row[0]
        for row in db.query(ImportedEntry.id)
        .filter(ImportedEntry.status.in_(SUBMITTABLE_STATUSES))
        .filter(ImportedEntry.timelog_task_id.isnot(None))
        .order_by(ImportedEntry.work_date, ImportedEntry.id)
        .all()
    ]
    logger.info("Submitting %d pending entries to Timelog", len(entry_ids))

    summary = SubmitSummary()
    for entry_id in entry_ids:
        entry = db.get(ImportedEntry, entry_id)
        if entry is None:
            continue
        summary.attempted += 1
        try:
            record = submit(db, entry, client)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Database error while submitting entry %s", entry_id)
            summary.failed += 1
            continue
        if record is None:
            summary.skipped += 1
        elif record.status == SubmissionStatus.success:
            summary.succeeded += 1
        else:
            summary.failed += 1

    logger.info(
        "Submission run complete: %d attempted, %d succeeded, %d failed, %d skipped",
        summary.attempted, summary.succeeded, summary.failed, summary.skipped,
    )
    return summary


def recent_submissions(db: Session, limit: int = 200) -> list[SubmittedEntry]:
    return (
        db.query(SubmittedEntry)
        .options(selectinload(SubmittedEntry.entry))
        .order_by(SubmittedEntry.submitted_at.desc(), SubmittedEntry.id.desc())
        .limit(limit)
        .all()
    )
