"""
Database module for the Heritage AI gateway.
Manages the SQLite database holding conversations and reference entries.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

from heritage_ai.config import config

logger = logging.getLogger(__name__)

ENTRY_CATEGORIES = (
    "Architecture",
    "Art",
    "Music",
    "Dance",
    "Literature",
    "Cuisine",
    "Festivals",
    "Rituals",
    "Crafts",
    "Clothing",
    "Language",
    "Folklore",
    "Religion",
    "Sports",
    "Other",
)

ENTRY_STATUSES = ("draft", "published", "archived")

_ENTRY_COLUMNS = (
    "title",
    "description",
    "category",
    "cultural_context",
    "historical_period",
    "location_name",
    "location_country",
    "location_region",
    "tags",
    "author_id",
    "status",
    "is_public",
)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _conversation_from_row(row: sqlite3.Row) -> dict:
    conv = dict(row)
    conv["messages"] = json.loads(conv["messages"] or "[]")
    return conv


def _entry_from_row(row: sqlite3.Row) -> dict:
    entry = dict(row)
    entry["tags"] = json.loads(entry["tags"] or "[]")
    entry["is_public"] = bool(entry["is_public"])
    return entry


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or config.DATABASE_PATH
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database cursor with auto-commit."""
        conn = self.connect()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create database schema if not exists."""
        logger.info(f"Initializing database at {self.db_path}")

        with self.cursor() as cur:
            # Reference entries, owned by the entry subsystem
            cur.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT 'Other',
                    cultural_context TEXT,
                    historical_period TEXT,
                    location_name TEXT,
                    location_country TEXT,
                    location_region TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    author_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'draft',
                    is_public INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            # AI conversations; messages is a JSON array
            cur.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    messages TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cur.execute("CREATE INDEX IF NOT EXISTS idx_entries_author ON entries(author_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_entries_status ON entries(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at)")

        logger.info("Database initialized successfully")

    # =========================================================================
    # Conversations
    # =========================================================================

    def create_conversation(self, user_id: str, title: str, messages: list[dict]) -> dict:
        """Insert a conversation and return it."""
        now = utcnow()
        conv_id = str(uuid.uuid4())
        with self.cursor() as cur:
            cur.execute("""
                INSERT INTO conversations (id, user_id, title, messages, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (conv_id, user_id, title, json.dumps(messages), now, now))
        return {
            "id": conv_id,
            "user_id": user_id,
            "title": title,
            "messages": list(messages),
            "created_at": now,
            "updated_at": now,
        }

    def get_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> Optional[dict]:
        """
        Get a conversation with its messages.

        When ``user_id`` is given, a conversation owned by someone else is
        reported as missing.
        """
        with self.cursor() as cur:
            if user_id is None:
                cur.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,))
            else:
                cur.execute(
                    "SELECT * FROM conversations WHERE id = ? AND user_id = ?",
                    (conversation_id, user_id),
                )
            row = cur.fetchone()
            return _conversation_from_row(row) if row else None

    def append_messages(self, conversation_id: str, messages: list[dict]) -> bool:
        """
        Append messages to a conversation. Returns False if it does not exist.

        Read-then-write without a lock: two concurrent appends to the same
        conversation can lose one of the pairs (last writer wins).
        """
        with self.cursor() as cur:
            cur.execute("SELECT messages FROM conversations WHERE id = ?", (conversation_id,))
            row = cur.fetchone()
            if not row:
                return False

        existing = json.loads(row["messages"] or "[]")
        existing.extend(messages)

        with self.cursor() as cur:
            cur.execute("""
                UPDATE conversations SET messages = ?, updated_at = ?
                WHERE id = ?
            """, (json.dumps(existing), utcnow(), conversation_id))
            return cur.rowcount > 0

    def list_conversations(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict]:
        """List a user's conversations, most recently updated first."""
        with self.cursor() as cur:
            cur.execute("""
                SELECT * FROM conversations
                WHERE user_id = ?
                ORDER BY updated_at DESC
                LIMIT ? OFFSET ?
            """, (user_id, limit, offset))
            return [_conversation_from_row(row) for row in cur.fetchall()]

    def count_conversations(self, user_id: str) -> int:
        with self.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) as count FROM conversations WHERE user_id = ?",
                (user_id,),
            )
            return cur.fetchone()["count"]

    def delete_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> bool:
        """Delete a conversation. Returns True if deleted."""
        with self.cursor() as cur:
            if user_id is None:
                cur.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
            else:
                cur.execute(
                    "DELETE FROM conversations WHERE id = ? AND user_id = ?",
                    (conversation_id, user_id),
                )
            return cur.rowcount > 0

    # =========================================================================
    # Entries
    # =========================================================================

    def upsert_entry(self, entry: dict) -> str:
        """Insert or update an entry record. Returns the entry ID."""
        entry_id = entry.get("id") or str(uuid.uuid4())
        now = utcnow()
        values = {
            "title": entry["title"],
            "description": entry["description"],
            "category": entry.get("category") or "Other",
            "cultural_context": entry.get("cultural_context"),
            "historical_period": entry.get("historical_period"),
            "location_name": entry.get("location_name"),
            "location_country": entry.get("location_country"),
            "location_region": entry.get("location_region"),
            "tags": json.dumps(list(entry.get("tags") or [])),
            "author_id": entry["author_id"],
            "status": entry.get("status") or "draft",
            "is_public": 1 if entry.get("is_public", True) else 0,
        }

        columns = ", ".join(_ENTRY_COLUMNS)
        placeholders = ", ".join("?" for _ in _ENTRY_COLUMNS)
        updates = ", ".join(f"{col} = excluded.{col}" for col in _ENTRY_COLUMNS)

        with self.cursor() as cur:
            cur.execute(f"""
                INSERT INTO entries (id, {columns}, created_at, updated_at)
                VALUES (?, {placeholders}, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    {updates},
                    updated_at = excluded.updated_at
            """, (entry_id, *[values[col] for col in _ENTRY_COLUMNS], now, now))
        return entry_id

    def get_entry(self, entry_id: str) -> Optional[dict]:
        """Get entry by ID."""
        with self.cursor() as cur:
            cur.execute("SELECT * FROM entries WHERE id = ?", (entry_id,))
            row = cur.fetchone()
            return _entry_from_row(row) if row else None

    def get_published_entries(self, author_id: str, limit: int = 5) -> list[dict]:
        """Get an author's published entries, newest first."""
        with self.cursor() as cur:
            cur.execute("""
                SELECT * FROM entries
                WHERE author_id = ? AND status = 'published'
                ORDER BY created_at DESC
                LIMIT ?
            """, (author_id, limit))
            return [_entry_from_row(row) for row in cur.fetchall()]
