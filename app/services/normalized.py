"""Source-agnostic candidate entries produced by the normalizers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


@dataclass
class CandidateEntry:
    """A normalized record not yet persisted. `external_id` is the dedup key."""
    external_id: str
    user_identifier: str
    work_date: date
    duration_seconds: int
    description: Optional[str] = None
    project_key: Optional[str] = None
    issue_key: Optional[str] = None
    activity: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedBatch:
    """Candidates plus the record-level errors collected while building them."""
    candidates: list[CandidateEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
