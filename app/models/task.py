from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class TimelogTask(Base):
    __tablename__ = "timelog_tasks"
    __table_args__ = (
        UniqueConstraint("timelog_project_id", "external_id", name="uq_task_project_external_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    timelog_project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("timelog_projects.id"), nullable=False, index=True
    )
    # ID as returned by the Timelog API; the booking request sends it as TaskID.
    external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    project = relationship("TimelogProject", back_populates="tasks")
