"""
Timelog REST client: project/task taxonomy and time registrations.

List endpoints answer in a HAL-like envelope where each item sits under
``Entities[i].Properties``.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import httpx

from app.core.config import settings
from app.core.errors import MissingCredentialError

logger = logging.getLogger(__name__)

PAGE_SIZE = 500


@dataclass
class TimelogProjectDTO:
    project_id: int
    name: str
    description: Optional[str] = None


@dataclass
class TimelogTaskDTO:
    task_id: int
    name: str
    project_id: int
    is_active: bool = True


@dataclass
class BookingRequest:
    task_id: int
    date: str
    hours: float
    comment: Optional[str]
    billable: bool = False
    request_id: str = ""

    def __post_init__(self) -> None:
        if not self.request_id:
            self.request_id = str(uuid.uuid4())

    def to_payload(self) -> dict[str, Any]:
        return {
            "ID": self.request_id,
            "TaskID": self.task_id,
            "GroupType": 1,  # 1 = project time
            "Date": self.date,
            "Hours": self.hours,
            "Comment": self.comment,
            "Billable": self.billable,
        }


@dataclass
class BookingResponse:
    success: bool
    status_code: int
    body: str
    confirmation_id: Optional[str] = None


def _entities(payload: dict[str, Any]) -> list[dict[str, Any]]:
    return [e.get("Properties") or {} for e in payload.get("Entities") or []]


class TimelogClient:
    def __init__(self, base_url: str, api_key: str, http: Optional[httpx.Client] = None):
        if not base_url:
            raise MissingCredentialError("Timelog base URL")
        if not api_key:
            raise MissingCredentialError("Timelog API key")
        self.base_url = base_url.rstrip("/")
        # A client passed in by the caller stays open; close() only closes our own.
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    @classmethod
    def from_settings(cls) -> "TimelogClient":
        return cls(settings.TIMELOG_BASE_URL, settings.TIMELOG_API_KEY)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TimelogClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_projects(self) -> list[TimelogProjectDTO]:
        response = self._http.get(
            f"{self.base_url}/v1/project/get-all",
            params={"$pagesize": PAGE_SIZE, "isActive": "true"},
            headers=self._headers,
        )
        response.raise_for_status()
        return [
            TimelogProjectDTO(
                project_id=int(p["ProjectID"]),
                name=p.get("Name", ""),
                description=p.get("Description"),
            )
            for p in _entities(response.json())
        ]

    def get_tasks(self, project_id: int) -> list[TimelogTaskDTO]:
        response = self._http.get(
            f"{self.base_url}/v1/task/filter",
            params={"$pagesize": PAGE_SIZE, "projectId": project_id},
            headers=self._headers,
        )
        response.raise_for_status()
        return [
            TimelogTaskDTO(
                task_id=int(t["TaskID"]),
                name=t.get("Name", ""),
                project_id=int(t.get("ProjectID", project_id)),
                is_active=bool(t.get("IsActive", True)),
            )
            for t in _entities(response.json())
        ]

    def create_time_registration(self, booking: BookingRequest) -> BookingResponse:
        """POST a registration. Rejections come back as a failed response;
        transport errors raise httpx exceptions."""
        response = self._http.post(
            f"{self.base_url}/v1/time-registration",
            json=booking.to_payload(),
            headers=self._headers,
        )
        if response.is_success:
            return BookingResponse(
                success=True,
                status_code=response.status_code,
                body=response.text,
                confirmation_id=self._confirmation_id(response) or booking.request_id,
            )
        return BookingResponse(
            success=False,
            status_code=response.status_code,
            body=response.text,
        )

    @staticmethod
    def _confirmation_id(response: httpx.Response) -> Optional[str]:
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        props = data.get("Properties") if isinstance(data.get("Properties"), dict) else data
        value = props.get("ID") or props.get("TimeRegistrationID")
        return str(value) if value else None


def get_timelog_client() -> Iterator[TimelogClient]:
    """FastAPI dependency, closed after the response; tests override it."""
    client = TimelogClient.from_settings()
    try:
        yield client
    finally:
        client.close()
