"""Jira Cloud REST client used to enrich worklogs with issue metadata."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.errors import MissingCredentialError

CUSTOM_FIELD_PREFIX = "customfield_"


@dataclass
class JiraIssue:
    issue_id: str
    key: str
    project_key: Optional[str]
    custom_fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "JiraIssue":
        fields = data.get("fields") or {}
        project = fields.get("project") or {}
        return cls(
            issue_id=str(data.get("id", "")),
            key=data.get("key", ""),
            project_key=project.get("key"),
            custom_fields={
                k: v for k, v in fields.items() if k.startswith(CUSTOM_FIELD_PREFIX)
            },
        )


@dataclass
class JiraUser:
    account_id: str
    display_name: Optional[str]
    email_address: Optional[str]


class JiraClient:
    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        http: Optional[httpx.Client] = None,
    ):
        if not email or not api_token:
            raise MissingCredentialError("Jira email and API token")
        self.base_url = base_url.rstrip("/")
        # A client passed in by the caller stays open; close() only closes our own.
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self._auth = httpx.BasicAuth(email, api_token)

    @classmethod
    def from_settings(cls) -> Optional["JiraClient"]:
        """Client built from settings, or None when enrichment is not configured."""
        if not settings.JIRA_BASE_URL:
            return None
        return cls(settings.JIRA_BASE_URL, settings.JIRA_EMAIL, settings.JIRA_API_TOKEN)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict] = None) -> dict[str, Any]:
        response = self._http.get(
            f"{self.base_url}{path}",
            params=params,
            auth=self._auth,
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    def get_issue(self, issue_id: int) -> JiraIssue:
        return JiraIssue.from_payload(self._get(f"/rest/api/3/issue/{issue_id}"))

    def get_user(self, account_id: str) -> JiraUser:
        data = self._get("/rest/api/3/user", params={"accountId": account_id})
        return JiraUser(
            account_id=data.get("accountId", account_id),
            display_name=data.get("displayName"),
            email_address=data.get("emailAddress"),
        )
