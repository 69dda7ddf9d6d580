"""Key-value storage ORM model."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from schema_assistant.models.base import Base, IdMixin


class StorageEntry(Base, IdMixin):
    """JSON text persisted under a unique key."""

    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    value_text: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
