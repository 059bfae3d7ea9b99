"""SQLite-based memory store for conversation persistence."""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime
from typing import List

from .models import ConversationTurn

logger = logging.getLogger(__name__)


class SQLiteMemoryStore:
    """SQLite-based persistent turn log."""

    def __init__(self, db_path: str = "data/conversations.db", timeout: float = 5.0):
        """
        Initialize SQLite memory store.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
                content TEXT NOT NULL,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_turns_conversation ON turns(conversation_id, id)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    def add_turn(
        self,
        conversation_id: str,
        role: str,
        content: str
    ) -> ConversationTurn:
        """
        Append a turn to a conversation.

        Args:
            conversation_id: Conversation ID
            role: Role (user, assistant)
            content: Message content

        Returns:
            Created ConversationTurn object
        """
        conn = self._get_connection()
        try:
            now = datetime.now()
            cursor = conn.execute(
                """
                INSERT INTO turns (conversation_id, role, content, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (conversation_id, role, content, now.isoformat())
            )
            conn.commit()
            turn_id = cursor.lastrowid
        finally:
            conn.close()

        return ConversationTurn(
            turn_id=turn_id,
            role=role,
            content=content,
            timestamp=now
        )

    def get_recent_turns(
        self,
        conversation_id: str,
        limit: int = 24
    ) -> List[ConversationTurn]:
        """
        Get most recent turns from a conversation.

        Args:
            conversation_id: Conversation ID
            limit: Maximum number of turns to return

        Returns:
            List of recent ConversationTurn objects in chronological order
        """
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, role, content, timestamp
                FROM turns
                WHERE conversation_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (conversation_id, limit)
            ).fetchall()
        finally:
            conn.close()

        turns = []
        for row in reversed(rows):  # Reverse to get chronological order
            turns.append(ConversationTurn(
                turn_id=row["id"],
                role=row["role"],
                content=row["content"],
                timestamp=datetime.fromisoformat(row["timestamp"]) if row["timestamp"] else datetime.now()
            ))

        return turns

    def delete_turns(self, conversation_id: str) -> int:
        """
        Delete every turn of a conversation.

        Args:
            conversation_id: Conversation ID

        Returns:
            Number of deleted turns
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM turns WHERE conversation_id = ?",
                (conversation_id,)
            )
            conn.commit()
            deleted = cursor.rowcount
        finally:
            conn.close()

        logger.info(f"Deleted {deleted} turns for conversation {conversation_id}")
        return deleted

    def get_turn_count(self, conversation_id: str) -> int:
        """Get the number of turns in a conversation."""
        conn = self._get_connection()
        try:
            result = conn.execute(
                "SELECT COUNT(*) FROM turns WHERE conversation_id = ?",
                (conversation_id,)
            ).fetchone()
        finally:
            conn.close()

        return result[0] if result else 0
