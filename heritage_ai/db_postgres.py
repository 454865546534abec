"""
PostgreSQL store for the Heritage AI gateway.
Async counterpart of the SQLite database, used when DATABASE_URL is set.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import asyncpg

from heritage_ai.config import Config
from heritage_ai.store import HeritageStore

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    description TEXT NOT NULL,
    category VARCHAR(50) NOT NULL DEFAULT 'Other',
    cultural_context TEXT,
    historical_period VARCHAR(100),
    location_name VARCHAR(255),
    location_country VARCHAR(100),
    location_region VARCHAR(100),
    tags JSONB NOT NULL DEFAULT '[]',
    author_id TEXT NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'draft',
    is_public BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title VARCHAR(255) NOT NULL,
    messages JSONB NOT NULL DEFAULT '[]',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_entries_author ON entries(author_id);
CREATE INDEX IF NOT EXISTS idx_entries_status ON entries(status);
CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id);
CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at);
"""


def _load_json(value, default):
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _conversation_from_record(record) -> dict:
    conv = dict(record)
    conv["messages"] = _load_json(conv.get("messages"), [])
    conv["created_at"] = _iso(conv.get("created_at"))
    conv["updated_at"] = _iso(conv.get("updated_at"))
    return conv


def _entry_from_record(record) -> dict:
    entry = dict(record)
    entry["tags"] = _load_json(entry.get("tags"), [])
    entry["created_at"] = _iso(entry.get("created_at"))
    entry["updated_at"] = _iso(entry.get("updated_at"))
    return entry


class PostgresDatabase(HeritageStore):
    """
    Async PostgreSQL database manager.
    Mirrors the SQLite schema.
    """

    def __init__(self, connection_url: Optional[str] = None):
        self.connection_url = connection_url or Config.POSTGRES_URL
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> asyncpg.Pool:
        """Get or create connection pool."""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self.connection_url,
                min_size=2,
                max_size=10,
                command_timeout=60
            )
            logger.info("PostgreSQL connection pool created")
        return self._pool

    async def close(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @asynccontextmanager
    async def acquire(self):
        """Context manager for acquiring a connection."""
        pool = await self.connect()
        async with pool.acquire() as conn:
            yield conn

    async def initialize(self) -> None:
        """Create tables if they do not exist."""
        async with self.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("PostgreSQL schema initialized")

    # =========================================================================
    # Conversations
    # =========================================================================

    async def create_conversation(self, user_id: str, title: str, messages: list[dict]) -> dict:
        conv_id = str(uuid.uuid4())
        async with self.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO conversations (id, user_id, title, messages)
                VALUES ($1, $2, $3, $4::jsonb)
                RETURNING *
            """, conv_id, user_id, title, json.dumps(messages))
            return _conversation_from_record(row)

    async def get_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> Optional[dict]:
        async with self.acquire() as conn:
            if user_id is None:
                row = await conn.fetchrow(
                    "SELECT * FROM conversations WHERE id = $1",
                    conversation_id
                )
            else:
                row = await conn.fetchrow(
                    "SELECT * FROM conversations WHERE id = $1 AND user_id = $2",
                    conversation_id, user_id
                )
            return _conversation_from_record(row) if row else None

    async def append_messages(self, conversation_id: str, messages: list[dict]) -> bool:
        """Read-then-write append; concurrent appends race (last writer wins)."""
        async with self.acquire() as conn:
            current = await conn.fetchval(
                "SELECT messages FROM conversations WHERE id = $1",
                conversation_id
            )
            if current is None:
                return False

            updated = _load_json(current, []) + list(messages)
            result = await conn.execute("""
                UPDATE conversations SET messages = $2::jsonb, updated_at = NOW()
                WHERE id = $1
            """, conversation_id, json.dumps(updated))
            return result == "UPDATE 1"

    async def list_conversations(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict]:
        async with self.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM conversations
                WHERE user_id = $1
                ORDER BY updated_at DESC
                LIMIT $2 OFFSET $3
            """, user_id, limit, offset)
            return [_conversation_from_record(r) for r in rows]

    async def count_conversations(self, user_id: str) -> int:
        async with self.acquire() as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM conversations WHERE user_id = $1",
                user_id
            )

    async def delete_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> bool:
        async with self.acquire() as conn:
            if user_id is None:
                result = await conn.execute(
                    "DELETE FROM conversations WHERE id = $1",
                    conversation_id
                )
            else:
                result = await conn.execute(
                    "DELETE FROM conversations WHERE id = $1 AND user_id = $2",
                    conversation_id, user_id
                )
            return result == "DELETE 1"

    # =========================================================================
    # Entries
    # =========================================================================

    async def upsert_entry(self, entry: dict) -> str:
        entry_id = entry.get("id") or str(uuid.uuid4())
        async with self.acquire() as conn:
            await conn.execute("""
                INSERT INTO entries (
                    id, title, description, category, cultural_context,
                    historical_period, location_name, location_country,
                    location_region, tags, author_id, status, is_public
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11, $12, $13)
                ON CONFLICT (id) DO UPDATE SET
                    title = EXCLUDED.title,
                    description = EXCLUDED.description,
                    category = EXCLUDED.category,
                    cultural_context = EXCLUDED.cultural_context,
                    historical_period = EXCLUDED.historical_period,
                    location_name = EXCLUDED.location_name,
                    location_country = EXCLUDED.location_country,
                    location_region = EXCLUDED.location_region,
                    tags = EXCLUDED.tags,
                    author_id = EXCLUDED.author_id,
                    status = EXCLUDED.status,
                    is_public = EXCLUDED.is_public,
                    updated_at = NOW()
            """,
                entry_id,
                entry["title"],
                entry["description"],
                entry.get("category") or "Other",
                entry.get("cultural_context"),
                entry.get("historical_period"),
                entry.get("location_name"),
                entry.get("location_country"),
                entry.get("location_region"),
                json.dumps(list(entry.get("tags") or [])),
                entry["author_id"],
                entry.get("status") or "draft",
                bool(entry.get("is_public", True)),
            )
        return entry_id

    async def get_entry(self, entry_id: str) -> Optional[dict]:
        async with self.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM entries WHERE id = $1", entry_id)
            return _entry_from_record(row) if row else None

    async def get_published_entries(self, author_id: str, limit: int = 5) -> list[dict]:
        async with self.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM entries
                WHERE author_id = $1 AND status = 'published'
                ORDER BY created_at DESC
                LIMIT $2
            """, author_id, limit)
            return [_entry_from_record(r) for r in rows]
