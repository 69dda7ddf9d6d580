"""Tests for the SQL-backed key-value store."""

from __future__ import annotations

import unittest

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from schema_assistant.config import Settings
from schema_assistant.models.base import Base
from schema_assistant.models.storage_entry import StorageEntry
from schema_assistant.services.chat_session import ChatSession
from schema_assistant.services.storage import (
    CHAT_HISTORY_KEY,
    SqlAlchemyKeyValueStore,
    StorageError,
)


class SqlAlchemyKeyValueStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        with self.SessionLocal() as db:
            db.execute(delete(StorageEntry))
            db.commit()
        self.store = SqlAlchemyKeyValueStore(self.SessionLocal)

    def test_save_load_overwrite_delete(self) -> None:
        self.assertIsNone(self.store.load("ai-config"))

        self.store.save("ai-config", '{"model": "a"}')
        self.store.save("ai-config", '{"model": "b"}')

        self.assertEqual(self.store.load("ai-config"), '{"model": "b"}')
        with self.SessionLocal() as db:
            rows = list(db.scalars(select(StorageEntry)))
        self.assertEqual(len(rows), 1)

        self.store.delete("ai-config")
        self.assertIsNone(self.store.load("ai-config"))
        self.store.delete("ai-config")

    def test_chat_session_history_survives_restart(self) -> None:
        settings = Settings(_env_file=None)
        session = ChatSession(self.store, settings=settings)
        session.import_history('[{"id": "m1", "role": "user", "content": "Hello"}]')

        restarted = ChatSession(SqlAlchemyKeyValueStore(self.SessionLocal), settings=settings)

        self.assertEqual([message.id for message in restarted.messages], ["m1"])
        self.assertIsNotNone(self.store.load(CHAT_HISTORY_KEY))

    def test_database_errors_are_wrapped(self) -> None:
        engine = create_engine("sqlite+pysqlite:///:memory:", future=True, poolclass=StaticPool)
        store = SqlAlchemyKeyValueStore(sessionmaker(bind=engine, future=True))

        with self.assertRaises(StorageError):
            store.load("ai-config")
        with self.assertRaises(StorageError):
            store.save("ai-config", "{}")
        engine.dispose()


if __name__ == "__main__":
    unittest.main()
