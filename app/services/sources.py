"""
Import source administration.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateSourceError
from app.models.entry import EntryStatus, ImportedEntry
from app.models.import_source import ImportSource, SourceType


@dataclass
class SourceSummary:
    source: ImportSource
    entry_count: int = 0
    pending_count: int = 0


def list_sources(db: Session) -> list[SourceSummary]:
    pending = func.sum(case((ImportedEntry.status == EntryStatus.pending, 1), else_=0))
    counts = {
        source_id: (total, int(pending_total or 0))
        for source_id, total, pending_total in (
            db.query(ImportedEntry.import_source_id, func.count(ImportedEntry.id), pending)
            .group_by(ImportedEntry.import_source_id)
            .all()
        )
    }
    sources = db.query(ImportSource).order_by(ImportSource.name).all()
    return [
        SourceSummary(s, *counts.get(s.id, (0, 0)))
        for s in sources
    ]


def create_source(
    db: Session,
    name: str,
    source_type: SourceType,
    api_token: Optional[str] = None,
    base_url: Optional[str] = None,
    poll_schedule: Optional[str] = None,
    is_enabled: bool = True,
) -> ImportSource:
    source = ImportSource(
        name=name,
        source_type=source_type,
        api_token=api_token,
        base_url=base_url,
        poll_schedule=poll_schedule,
        is_enabled=is_enabled,
    )
    db.add(source)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSourceError(name) from exc
    db.refresh(source)
    return source
