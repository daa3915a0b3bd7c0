from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class TimelogProject(Base):
    """Project mirrored from Timelog. Read-only for the pipeline."""

    __tablename__ = "timelog_projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # ID as returned by the Timelog API.
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    tasks = relationship("TimelogTask", back_populates="project", order_by="TimelogTask.name")
