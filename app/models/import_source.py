from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from app.db.base import Base


class SourceType(str, enum.Enum):
    tempo = "tempo"
    upload = "upload"


class ImportSource(Base):
    __tablename__ = "import_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    source_type: Mapped[str] = mapped_column(
        Enum(SourceType, name="source_type_enum"), nullable=False
    )
    # Bearer token and base URL override for API-based sources.
    api_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    base_url: Mapped[str | None] = mapped_column(String(256), nullable=True)
    # Cron expression for the external scheduler, e.g. "0 6 * * *".
    poll_schedule: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_polled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    entries = relationship("ImportedEntry", back_populates="import_source")
