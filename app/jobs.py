"""
Scheduled jobs.

Each job opens its own session, does one unit of work and logs a
summary. Any scheduler (cron, a container job, a k8s CronJob) can run
them through:

    python -m app.jobs pull-worklogs
    python -m app.jobs submit
    python -m app.jobs sync-taxonomy
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.clients.timelog import TimelogClient
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.base import SessionLocal
from app.services import ingest, submission, taxonomy_sync
from app.services.ingest import SourceImportOutcome
from app.services.submission import SubmitSummary
from app.services.taxonomy_sync import SyncResult

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def pull_worklogs_job(
    session_factory: Optional[SessionFactory] = None,
    **import_kwargs,
) -> list[SourceImportOutcome]:
    """Previous-day import for every enabled worklog source."""
    db = (session_factory or SessionLocal)()
    try:
        outcomes = ingest.import_yesterday(db, **import_kwargs)
    finally:
        db.close()
    failed = [o for o in outcomes if o.error]
    logger.info("Worklog pull finished: %d sources, %d failed", len(outcomes), len(failed))
    return outcomes


def submit_mapped_entries_job(
    session_factory: Optional[SessionFactory] = None,
    client: Optional[TimelogClient] = None,
) -> SubmitSummary:
    if client is None:
        with TimelogClient.from_settings() as own_client:
            return submit_mapped_entries_job(session_factory, own_client)
    db = (session_factory or SessionLocal)()
    try:
        return submission.submit_all_pending(db, client)
    finally:
        db.close()


def sync_taxonomy_job(
    session_factory: Optional[SessionFactory] = None,
    client: Optional[TimelogClient] = None,
) -> SyncResult:
    if client is None:
        with TimelogClient.from_settings() as own_client:
            return sync_taxonomy_job(session_factory, own_client)
    db = (session_factory or SessionLocal)()
    try:
        return taxonomy_sync.sync_taxonomy(db, client)
    finally:
        db.close()


JOBS: dict[str, Callable[[], object]] = {
    "pull-worklogs": pull_worklogs_job,
    "submit": submit_mapped_entries_job,
    "sync-taxonomy": sync_taxonomy_job,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Timelog bridge scheduled jobs")
    subparsers = parser.add_subparsers(dest="job", required=True)
    subparsers.add_parser("pull-worklogs", help="Import yesterday's worklogs")
    subparsers.add_parser("submit", help="Submit mapped entries to Timelog")
    subparsers.add_parser("sync-taxonomy", help="Refresh Timelog projects and tasks")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)
    try:
        JOBS[args.job]()
    except Exception:
        logger.exception("Job '%s' failed", args.job)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
