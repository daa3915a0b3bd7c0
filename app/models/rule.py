from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base
from app.models.import_source import SourceType


class MatchOperator(str, enum.Enum):
    equals = "equals"
    contains = "contains"
    starts_with = "starts_with"
    regex = "regex"


class MappingRule(Base):
    """User-authored predicate assigning entries to a Timelog project/task."""

    __tablename__ = "mapping_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # NULL means the rule applies to entries from every source type.
    source_type: Mapped[str | None] = mapped_column(
        Enum(SourceType, name="source_type_enum"), nullable=True
    )
    # Entry field name, or "metadata.<key>" for a key in the metadata bag.
    match_field: Mapped[str] = mapped_column(String(128), nullable=False)
    match_operator: Mapped[str] = mapped_column(
        Enum(MatchOperator, name="match_operator_enum"), nullable=False
    )
    match_value: Mapped[str] = mapped_column(String(512), nullable=False)

    timelog_project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("timelog_projects.id"), nullable=False
    )
    # Optional: a rule may assign a project only.
    timelog_task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("timelog_tasks.id"), nullable=True
    )

    # Lower numbers are evaluated first.
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
