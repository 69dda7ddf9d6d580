"""FastAPI dependency providers."""

from functools import lru_cache

from schema_assistant.db.session import SessionLocal
from schema_assistant.services.chat_session import ChatSession
from schema_assistant.services.storage import SqlAlchemyKeyValueStore


@lru_cache
def get_chat_session() -> ChatSession:
    """Return the process-wide chat session backed by the configured database."""

    return ChatSession(SqlAlchemyKeyValueStore(SessionLocal))
