"""SQLite-backed daily usage counter for per-user message limits."""

import sqlite3
import logging
from pathlib import Path
from datetime import date
from typing import Optional

logger = logging.getLogger(__name__)


class SQLiteUsageStore:
    """Counts messages per user per day."""

    def __init__(self, db_path: str = "data/conversations.db", timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    def _init_db(self):
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage (
                user_id TEXT NOT NULL,
                day TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (user_id, day)
            )
        """)
        conn.commit()
        conn.close()

    def increment(self, user_id: str, day: Optional[date] = None) -> int:
        """
        Count one message for the user and return the day's total.

        Args:
            user_id: User identifier
            day: Day bucket (default: today)

        Returns:
            Message count for the day including this one
        """
        day_key = (day or date.today()).isoformat()
        conn = self._get_connection()
        try:
            # One statement, so concurrent increments each see their own total
            row = conn.execute(
                """
                INSERT INTO usage (user_id, day, count) VALUES (?, ?, 1)
                ON CONFLICT(user_id, day) DO UPDATE SET count = count + 1
                RETURNING count
                """,
                (user_id, day_key)
            ).fetchone()
            conn.commit()
        finally:
            conn.close()

        return row[0] if row else 0

    def get_count(self, user_id: str, day: Optional[date] = None) -> int:
        """Message count for the user on the given day."""
        day_key = (day or date.today()).isoformat()
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT count FROM usage WHERE user_id = ? AND day = ?",
                (user_id, day_key)
            ).fetchone()
        finally:
            conn.close()
        return row[0] if row else 0
