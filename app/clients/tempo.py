"""
Tempo worklog API client.

GET {base}/worklogs?from=&to=&offset=&limit= returns
``{"results": [...], "metadata": {"next": url | null, ...}}``.
Pages are fetched in order; HTTP errors propagate to the caller, which
treats the whole import as the unit of retry. A malformed record is
reported in the caller's error list and skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.errors import MissingCredentialError

logger = logging.getLogger(__name__)


@dataclass
class TempoWorklog:
    worklog_id: int
    issue_id: Optional[int]
    author_account_id: Optional[str]
    start_date: str
    start_time: Optional[str]
    time_spent_seconds: int
    billable_seconds: int
    description: Optional[str]
    attributes: list[tuple[str, Optional[str]]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "TempoWorklog":
        issue = data.get("issue") or {}
        author = data.get("author") or {}
        attrs = (data.get("attributes") or {}).get("values") or []
        return cls(
            worklog_id=int(data["tempoWorklogId"]),
            issue_id=int(issue["id"]) if issue.get("id") is not None else None,
            author_account_id=author.get("accountId") or None,
            start_date=str(data.get("startDate") or ""),
            start_time=data.get("startTime"),
            time_spent_seconds=int(data.get("timeSpentSeconds") or 0),
            billable_seconds=int(data.get("billableSeconds") or 0),
            description=data.get("description"),
            attributes=[(str(a.get("key", "")), a.get("value")) for a in attrs],
        )


def _read_record(item: Any, position: int) -> tuple[Optional[TempoWorklog], Optional[str]]:
    ref = item.get("tempoWorklogId") if isinstance(item, dict) else None
    label = f"Worklog {ref}" if ref is not None else f"Worklog #{position}"
    try:
        return TempoWorklog.from_payload(item), None
    except KeyError as exc:
        return None, f"{label}: missing field '{exc.args[0]}'."
    except (ValueError, TypeError, AttributeError) as exc:
        logger.debug("Unreadable worklog record %r", item)
        return None, f"{label}: invalid record ({exc})."


class TempoClient:
    def __init__(
        self,
        base_url: str,
        api_token: str,
        http: Optional[httpx.Client] = None,
        page_size: Optional[int] = None,
    ):
        if not api_token:
            raise MissingCredentialError("Tempo API token")
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size or settings.TEMPO_PAGE_SIZE
        # A client passed in by the caller stays open; close() only closes our own.
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Accept": "application/json",
        }

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TempoClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch_worklogs(
        self,
        date_from: date,
        date_to: date,
        errors: Optional[list[str]] = None,
    ) -> list[TempoWorklog]:
        """All worklogs in [date_from, date_to], accumulated across pages.

        Records that cannot be read are left out and described in `errors`.
        """
        if errors is None:
            errors = []
        worklogs: list[TempoWorklog] = []
        offset = 0
        while True:
            response = self._http.get(
                f"{self.base_url}/worklogs",
                params={
                    "from": date_from.isoformat(),
                    "to": date_to.isoformat(),
                    "offset": offset,
                    "limit": self.page_size,
                },
                headers=self._headers,
            )
            response.raise_for_status()
            page = response.json()
            results = page.get("results") or []
            for position, item in enumerate(results, start=offset + 1):
                worklog, error = _read_record(item, position)
                if error:
                    errors.append(error)
                else:
                    worklogs.append(worklog)
            logger.debug("Fetched worklog page offset=%s count=%s", offset, len(results))

            next_url = (page.get("metadata") or {}).get("next")
            if not next_url or len(results) < self.page_size:
                break
            offset += self.page_size
        return worklogs
