from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, DateTime, Date, Enum, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from app.db.base import Base


class EntryStatus(str, enum.Enum):
    pending = "pending"
    mapped = "mapped"
    submitted = "submitted"
    failed = "failed"
    ignored = "ignored"


class ImportedEntry(Base):
    """One time record after normalization, whatever system it came from."""

    __tablename__ = "imported_entries"
    __table_args__ = (
        UniqueConstraint("import_source_id", "external_id", name="uq_entry_source_external_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    import_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("import_sources.id"), nullable=False, index=True
    )
    # Worklog id, or row content hash for uploads. Dedup key within a source.
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Account id (worklog API) or email (uploads).
    user_identifier: Mapped[str] = mapped_column(String(256), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Source-native classification hints read by mapping rules.
    project_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    issue_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    activity: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # JSON object of extra source fields (custom fields, unknown CSV columns).
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        Enum(EntryStatus, name="entry_status_enum"),
        nullable=False,
        default=EntryStatus.pending,
        index=True,
    )
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    mapping_rule_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("mapping_rules.id", ondelete="SET NULL"), nullable=True
    )
    timelog_project_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("timelog_projects.id"), nullable=True
    )
    timelog_task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("timelog_tasks.id"), nullable=True
    )

    import_source = relationship("ImportSource", back_populates="entries")
    timelog_task = relationship("TimelogTask")
    submission = relationship("SubmittedEntry", back_populates="entry", uselist=False)
