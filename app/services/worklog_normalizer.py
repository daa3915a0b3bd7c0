"""
Worklog API normalizer.

Fetches every worklog for a period, then enriches the ones that reference
an issue with project key, issue key and custom fields from the issue
tracker. Enrichment is best effort: each lookup returns an
`EnrichmentResult`, and a failed one leaves the entry un-enriched. Author
account ids are resolved to display names the same way.
Lookups run on a bounded thread pool; one failure never cancels another.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional

from app.clients.jira import JiraClient, JiraIssue
from app.clients.tempo import TempoClient, TempoWorklog
from app.core.config import settings
from app.services.normalized import CandidateEntry, NormalizedBatch

logger = logging.getLogger(__name__)

UNKNOWN_USER = "unknown"


@dataclass
class EnrichmentResult:
    issue_id: int
    issue: Optional[JiraIssue] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.issue is not None


@dataclass
class AuthorResult:
    account_id: str
    display_name: Optional[str] = None
    error: Optional[str] = None


def _lookup_issue(jira: JiraClient, issue_id: int) -> EnrichmentResult:
    try:
        return EnrichmentResult(issue_id=issue_id, issue=jira.get_issue(issue_id))
    except Exception as exc:  # noqa: BLE001
        return EnrichmentResult(issue_id=issue_id, error=str(exc) or type(exc).__name__)


def _lookup_author(jira: JiraClient, account_id: str) -> AuthorResult:
    try:
        user = jira.get_user(account_id)
        return AuthorResult(account_id=account_id, display_name=user.display_name)
    except Exception as exc:  # noqa: BLE001
        return AuthorResult(account_id=account_id, error=str(exc) or type(exc).__name__)


def _run_lookups(lookup: Callable[[Any], Any], keys: list, max_workers: Optional[int]) -> list:
    workers = max(1, min(max_workers or settings.JIRA_ENRICHMENT_CONCURRENCY, len(keys)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(lookup, keys))


def enrich_issues(
    jira: Optional[JiraClient],
    issue_ids: Iterable[int],
    max_workers: Optional[int] = None,
) -> dict[int, EnrichmentResult]:
    """Look up each distinct issue once, in parallel."""
    unique_ids = sorted(set(issue_ids))
    if jira is None or not unique_ids:
        return {}
    results = _run_lookups(lambda issue_id: _lookup_issue(jira, issue_id), unique_ids, max_workers)
    return {result.issue_id: result for result in results}


def lookup_authors(
    jira: Optional[JiraClient],
    account_ids: Iterable[str],
    max_workers: Optional[int] = None,
) -> dict[str, AuthorResult]:
    """Display names for each distinct author account, in parallel."""
    unique_ids = sorted(set(account_ids))
    if jira is None or not unique_ids:
        return {}
    results = _run_lookups(lambda account_id: _lookup_author(jira, account_id), unique_ids, max_workers)
    return {result.account_id: result for result in results}


def build_metadata(
    worklog: TempoWorklog,
    issue: Optional[JiraIssue],
    author_name: Optional[str] = None,
) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "billableSeconds": worklog.billable_seconds,
        "startTime": worklog.start_time,
    }
    for key, value in worklog.attributes:
        meta[f"attr_{key}"] = value
    if author_name:
        meta["authorDisplayName"] = author_name
    if issue is not None:
        for key, value in issue.custom_fields.items():
            meta[key] = value
    return meta


class WorklogNormalizer:
    def __init__(
        self,
        tempo: TempoClient,
        jira: Optional[JiraClient] = None,
        max_workers: Optional[int] = None,
    ):
        self.tempo = tempo
        self.jira = jira
        self.max_workers = max_workers

    def normalize(
        self,
        date_from: date,
        date_to: date,
        known_external_ids: Iterable[str] = (),
    ) -> NormalizedBatch:
        """Candidates for every worklog in the period.

        Worklogs whose id is in `known_external_ids` are still returned (the
        ingest step counts them as duplicates) but are not enriched.
        """
        batch = NormalizedBatch()
        worklogs = self.tempo.fetch_worklogs(date_from, date_to, errors=batch.errors)
        logger.info("Fetched %d worklogs for %s..%s", len(worklogs), date_from, date_to)

        known = set(known_external_ids)
        to_enrich = [
            w.issue_id for w in worklogs
            if w.issue_id and w.issue_id > 0 and str(w.worklog_id) not in known
        ]
        if to_enrich and self.jira is None:
            logger.warning("Issue enrichment is not configured; importing without it")
        enrichments = enrich_issues(self.jira, to_enrich, self.max_workers)
        authors = lookup_authors(
            self.jira,
            [w.author_account_id for w in worklogs
             if w.author_account_id and str(w.worklog_id) not in known],
            self.max_workers,
        )

        for worklog in worklogs:
            candidate, error = self._to_candidate(worklog, enrichments, authors)
            if error:
                batch.errors.append(error)
            else:
                batch.candidates.append(candidate)
        return batch

    def _to_candidate(
        self,
        worklog: TempoWorklog,
        enrichments: dict[int, EnrichmentResult],
        authors: dict[str, AuthorResult],
    ) -> tuple[Optional[CandidateEntry], Optional[str]]:
        try:
            work_date = date.fromisoformat(worklog.start_date)
        except ValueError:
            return None, f"Worklog {worklog.worklog_id}: cannot parse date '{worklog.start_date}'."
        if worklog.time_spent_seconds <= 0:
            return None, (
                f"Worklog {worklog.worklog_id}: non-positive duration "
                f"{worklog.time_spent_seconds}."
            )

        issue: Optional[JiraIssue] = None
        result = enrichments.get(worklog.issue_id) if worklog.issue_id else None
        if result is not None:
            if result.ok:
                issue = result.issue
            else:
                logger.warning(
                    "Failed to fetch issue %s for worklog %s: %s",
                    worklog.issue_id, worklog.worklog_id, result.error,
                )

        return CandidateEntry(
            external_id=str(worklog.worklog_id),
            user_identifier=worklog.author_account_id or UNKNOWN_USER,
            work_date=work_date,
            duration_seconds=worklog.time_spent_seconds,
            description=worklog.description,
            project_key=issue.project_key if issue else None,
            issue_key=issue.key if issue else None,
            metadata=build_metadata(worklog, issue, self._author_name(worklog, authors)),
        ), None

    @staticmethod
    def _author_name(worklog: TempoWorklog, authors: dict[str, AuthorResult]) -> Optional[str]:
        result = authors.get(worklog.author_account_id) if worklog.author_account_id else None
        if result is None:
            return None
        if result.error:
            logger.warning(
                "Failed to look up author %s for worklog %s: %s",
                worklog.author_account_id, worklog.worklog_id, result.error,
            )
        return result.display_name
