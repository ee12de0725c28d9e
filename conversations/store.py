"""SQLite conversation store"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import aiosqlite

from errors import StoreError
from .models import Message, Role

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id TEXT    NOT NULL,
    role            TEXT    NOT NULL,
    content         TEXT    NOT NULL,
    created_at      TEXT    NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_messages_conversation
    ON messages(conversation_id, id);
"""

CREATED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_created_at(value: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value, CREATED_AT_FORMAT)
    except (TypeError, ValueError):
        return None


class ConversationStore:
    """Append-only message log keyed by conversation id

    Every insert is its own statement; concurrent writers to one
    conversation interleave by id without any cross-request transaction.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        """Open (or create) the database and run the schema migration"""
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.executescript(SCHEMA)
            await self._db.commit()
        except (sqlite3.Error, OSError) as e:
            await self.close()
            raise StoreError(f"opening database: {e}") from e
        logger.info(f"Conversation store ready at {self.db_path}")

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def close(self) -> None:
        """Close the database connection"""
        if self._db is not None:
            db, self._db = self._db, None
            await db.close()

    async def __aenter__(self) -> "ConversationStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError("conversation store is not open")
        return self._db

    async def add_message(self, conversation_id: str, role: Role, content: str) -> int:
        """
        Append a message to a conversation.

        Returns:
            The assigned message id

        Raises:
            StoreError: the insert failed
        """
        db = self._conn()
        try:
            cursor = await db.execute(
                "INSERT INTO messages (conversation_id, role, content) VALUES (?, ?, ?)",
                (conversation_id, Role(role).value, content),
            )
            await db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"inserting message: {e}") from e
        return cursor.lastrowid

    async def messages(self, conversation_id: str) -> List[Message]:
        """
        All messages of a conversation in insertion order.

        Raises:
            StoreError: the query failed
        """
        db = self._conn()
        try:
            async with db.execute(
                "SELECT id, conversation_id, role, content, created_at "
                "FROM messages WHERE conversation_id = ? ORDER BY id",
                (conversation_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"querying messages: {e}") from e

        return [
            Message(
                id=row[0],
                conversation_id=row[1],
                role=Role(row[2]),
                content=row[3],
                created_at=_parse_created_at(row[4]),
            )
            for row in rows
        ]
