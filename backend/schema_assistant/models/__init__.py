"""ORM models package exports."""

from schema_assistant.models.storage_entry import StorageEntry

__all__ = ["StorageEntry"]
