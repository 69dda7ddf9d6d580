"""SQLAlchemy metadata registry import for Alembic."""

from schema_assistant.models import StorageEntry
from schema_assistant.models.base import Base

__all__ = ["Base", "StorageEntry"]
