"""
Store interface used by the gateway.

SQLite (``heritage_ai.db``) is the default backend; PostgreSQL
(``heritage_ai.db_postgres``) is used when DATABASE_URL is set.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from heritage_ai.config import Config
from heritage_ai.db import Database

logger = logging.getLogger(__name__)


class HeritageStore(ABC):
    """Async persistence for conversations and read access to entries."""

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def create_conversation(self, user_id: str, title: str, messages: list[dict]) -> dict:
        pass

    @abstractmethod
    async def get_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> Optional[dict]:
        pass

    @abstractmethod
    async def append_messages(self, conversation_id: str, messages: list[dict]) -> bool:
        pass

    @abstractmethod
    async def list_conversations(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict]:
        pass

    @abstractmethod
    async def count_conversations(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def delete_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    async def upsert_entry(self, entry: dict) -> str:
        pass

    @abstractmethod
    async def get_entry(self, entry_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    async def get_published_entries(self, author_id: str, limit: int = 5) -> list[dict]:
        pass


class SQLiteStore(HeritageStore):
    """Async facade over the SQLite ``Database``."""

    def __init__(self, database: Database):
        self.database = database

    async def initialize(self) -> None:
        self.database.initialize()

    async def close(self) -> None:
        self.database.close()

    async def create_conversation(self, user_id, title, messages):
        return self.database.create_conversation(user_id, title, messages)

    async def get_conversation(self, conversation_id, user_id=None):
        return self.database.get_conversation(conversation_id, user_id)

    async def append_messages(self, conversation_id, messages):
        return self.database.append_messages(conversation_id, messages)

    async def list_conversations(self, user_id, limit=20, offset=0):
        return self.database.list_conversations(user_id, limit, offset)

    async def count_conversations(self, user_id):
        return self.database.count_conversations(user_id)

    async def delete_conversation(self, conversation_id, user_id=None):
        return self.database.delete_conversation(conversation_id, user_id)

    async def upsert_entry(self, entry):
        return self.database.upsert_entry(entry)

    async def get_entry(self, entry_id):
        return self.database.get_entry(entry_id)

    async def get_published_entries(self, author_id, limit=5):
        return self.database.get_published_entries(author_id, limit)


def create_store() -> HeritageStore:
    """Pick the backend from configuration."""
    if Config.POSTGRES_URL:
        from heritage_ai.db_postgres import PostgresDatabase
        logger.info("Using PostgreSQL store")
        return PostgresDatabase(Config.POSTGRES_URL)

    logger.info(f"Using SQLite store at {Config.DATABASE_PATH}")
    return SQLiteStore(Database(Config.DATABASE_PATH))
