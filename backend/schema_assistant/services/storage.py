"""Key-value persistence port used for chat history and assistant configuration."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from schema_assistant.models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)

CHAT_HISTORY_KEY = "ai-chat-history"
AI_CONFIG_KEY = "ai-config"


class StorageError(RuntimeError):
    """Raised when a stored value cannot be read or written."""


class KeyValueStore(Protocol):
    """Durable string storage keyed by name."""

    def load(self, key: str) -> str | None:
        """Return the stored text or ``None`` when absent."""

    def save(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""


class InMemoryKeyValueStore:
    """Process-local store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self._values.get(key)

    def save(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SqlAlchemyKeyValueStore:
    """Store backed by the ``storage_entries`` table; one short session per call."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                return db.scalar(select(StorageEntry.value_text).where(StorageEntry.key == key))
        except SQLAlchemyError as exc:
            logger.warning("storage.load_failed key=%s error=%s", key, exc)
            raise StorageError(f"Failed to load {key}") from exc

    def save(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.scalar(select(StorageEntry).where(StorageEntry.key == key))
                if entry is None:
                    db.add(StorageEntry(key=key, value_text=value))
                else:
                    entry.value_text = value
                db.commit()
        except SQLAlchemyError as exc:
            logger.warning("storage.save_failed key=%s error=%s", key, exc)
            raise StorageError(f"Failed to save {key}") from exc

    def delete(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                db.execute(delete(StorageEntry).where(StorageEntry.key == key))
                db.commit()
        except SQLAlchemyError as exc:
            logger.warning("storage.delete_failed key=%s error=%s", key, exc)
            raise StorageError(f"Failed to delete {key}") from exc
