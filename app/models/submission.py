from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from app.db.base import Base


class SubmissionStatus(str, enum.Enum):
    success = "success"
    failed = "failed"
    retrying = "retrying"


class SubmittedEntry(Base):
    """Audit of booking attempts. One row per entry, updated in place."""

    __tablename__ = "submitted_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    imported_entry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("imported_entries.id"), nullable=False, unique=True
    )
    # Registration id confirmed by Timelog; NULL until a successful attempt.
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(SubmissionStatus, name="submission_status_enum"), nullable=False
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    entry = relationship("ImportedEntry", back_populates="submission")
