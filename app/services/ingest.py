"""
Ingest service: deduplicates normalized candidates and persists new entries.

Public API
----------
import_batch(db, source_id, batch)                 → ImportResult
import_file(db, source_id, content, filename)      → ImportResult
import_worklogs(db, source_id, date_from, date_to) → ImportResult
import_yesterday(db)                               → list[SourceImportOutcome]

Every import is safe to re-run unchanged: already-imported external ids
are counted as skipped, never written twice. After persisting, mapping
rules are applied to everything still pending.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.clients.jira import JiraClient
from app.clients.tempo import TempoClient
from app.core.config import settings
from app.core.errors import (
    FileParseError,
    MissingCredentialError,
    SourceNotFoundError,
    SourceTypeMismatchError,
)
from app.models.entry import EntryStatus, ImportedEntry
from app.models.import_source import ImportSource, SourceType
from app.services import classification
from app.services.field_resolver import dump_metadata
from app.services.normalized import CandidateEntry, NormalizedBatch
from app.services.tabular_normalizer import normalize_file
from app.services.worklog_normalizer import WorklogNormalizer

logger = logging.getLogger(__name__)

TempoClientFactory = Callable[[ImportSource], TempoClient]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ImportResult:
    total: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SourceImportOutcome:
    source_id: int
    source_name: str
    result: Optional[ImportResult] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def get_source(db: Session, source_id: int) -> ImportSource:
    source = db.get(ImportSource, source_id)
    if source is None:
        raise SourceNotFoundError(source_id)
    return source


def _require_type(source: ImportSource, expected: SourceType) -> None:
    actual = SourceType(source.source_type)
    if actual != expected:
        raise SourceTypeMismatchError(source.id, expected.value, actual.value)


def existing_external_ids(db: Session, source_id: int) -> set[str]:
    rows = (
        db.query(ImportedEntry.external_id)
        .filter(ImportedEntry.import_source_id == source_id)
        .all()
    )
    return {row[0] for row in rows}


def _to_entry(source_id: int, candidate: CandidateEntry) -> ImportedEntry:
    return ImportedEntry(
        import_source_id=source_id,
        external_id=candidate.external_id,
        user_identifier=candidate.user_identifier,
        work_date=candidate.work_date,
        duration_seconds=candidate.duration_seconds,
        description=candidate.description,
        project_key=candidate.project_key,
        issue_key=candidate.issue_key,
        activity=candidate.activity,
        metadata_json=dump_metadata(candidate.metadata),
        status=EntryStatus.pending,
        imported_at=_now(),
    )


def default_tempo_client(source: ImportSource) -> TempoClient:
    if not source.api_token:
        raise MissingCredentialError(f"API token for import source {source.id}")
    return TempoClient(source.base_url or settings.TEMPO_BASE_URL, source.api_token)


# ---------------------------------------------------------------------------
# Core
# ---------------------------------------------------------------------------

def import_batch(
    db: Session,
    source_id: int,
    batch: NormalizedBatch,
    known_ids: Optional[set[str]] = None,
) -> ImportResult:
    """Persist the new candidates of `batch` as pending and classify.

    Candidates whose external id was already imported for the source (or
    that repeat within the batch) are skipped.
    """
    source = get_source(db, source_id)
    seen = set(known_ids) if known_ids is not None else existing_external_ids(db, source_id)

    result = ImportResult(total=len(batch.candidates), errors=list(batch.errors))
    for candidate in batch.candidates:
        if candidate.external_id in seen:
            result.skipped += 1
            continue
        db.add(_to_entry(source_id, candidate))
        seen.add(candidate.external_id)
        result.imported += 1

    source.last_polled_at = _now()
    db.commit()

    classification.apply_all_pending(db)

    logger.info(
        "Import for source '%s' complete: %d candidates, %d imported, %d skipped, %d errors",
        source.name, result.total, result.imported, result.skipped, len(result.errors),
    )
    return result


def import_file(db: Session, source_id: int, content: bytes, filename: str) -> ImportResult:
    source = get_source(db, source_id)
    _require_type(source, SourceType.upload)
    logger.info("Starting file import: %s for source %s", filename, source_id)

    try:
        batch = normalize_file(source_id, content, filename)
    except FileParseError as exc:
        logger.error("Failed to parse file %s: %s", filename, exc.message)
        return ImportResult(errors=[exc.message])

    if not batch.candidates and batch.errors:
        return ImportResult(errors=batch.errors)
    return import_batch(db, source_id, batch)


def import_worklogs(
    db: Session,
    source_id: int,
    date_from: date,
    date_to: date,
    tempo_factory: Optional[TempoClientFactory] = None,
    jira: Optional[JiraClient] = None,
) -> ImportResult:
    """Import a period of worklogs. HTTP failures fetching worklogs propagate.

    The worklog client built for the source is closed afterwards; a `jira`
    client passed in stays open for the caller.
    """
    source = get_source(db, source_id)
    _require_type(source, SourceType.tempo)
    own_jira = jira is None
    if own_jira:
        jira = JiraClient.from_settings()
    try:
        with (tempo_factory or default_tempo_client)(source) as tempo:
            logger.info(
                "Importing worklogs for source '%s' from %s to %s", source.name, date_from, date_to,
            )
            known = existing_external_ids(db, source_id)
            batch = WorklogNormalizer(tempo, jira).normalize(
                date_from, date_to, known_external_ids=known,
            )
    finally:
        if own_jira and jira is not None:
            jira.close()
    return import_batch(db, source_id, batch, known_ids=known)


def import_yesterday(
    db: Session,
    tempo_factory: Optional[TempoClientFactory] = None,
    jira: Optional[JiraClient] = None,
    today: Optional[date] = None,
) -> list[SourceImportOutcome]:
    """Import the previous UTC day for every enabled worklog source.

    A failing source is logged and reported; the others still run.
    """
    yesterday = (today or _now().date()) - timedelta(days=1)
    sources: Iterable[ImportSource] = (
        db.query(ImportSource)
        .filter(ImportSource.source_type == SourceType.tempo)
        .filter(ImportSource.is_enabled == True)  # noqa: E712
        .order_by(ImportSource.id)
        .all()
    )

    outcomes: list[SourceImportOutcome] = []
    for source in sources:
        outcome = SourceImportOutcome(source_id=source.id, source_name=source.name)
        try:
            outcome.result = import_worklogs(
                db, source.id, yesterday, yesterday, tempo_factory=tempo_factory, jira=jira,
            )
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.exception("Failed to import worklogs for source '%s'", source.name)
            outcome.error = str(exc) or type(exc).__name__
        outcomes.append(outcome)
    return outcomes
