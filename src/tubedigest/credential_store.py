"""
Persisted settings using SQLite.

Stores the OpenRouter API key (and any other small string settings) in a
key-value table. No validation is done on stored values.
"""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = os.path.join(Path.home(), ".tubedigest", "settings.db")
KEY_API_KEY = "api_key"


class CredentialStore:
    """SQLite-backed key-value store for the API key."""

    def __init__(self, db_path: Optional[str] = None, env_fallback: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (":memory:" for a throwaway store)
            env_fallback: Environment variable consulted when no key is stored
        """
        self.db_path = db_path or os.getenv("TUBEDIGEST_DB") or DEFAULT_DB_PATH
        if self.db_path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        self.env_fallback = env_fallback
        self.conn = sqlite3.connect(self.db_path)
        self.create_tables()

    def create_tables(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def get_value(self, key: str, default: str = "") -> str:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else default

    def set_value(self, key: str, value: str) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, value),
        )
        self.conn.commit()

    def get(self) -> str:
        """Return the stored API key, or "" when none is configured."""
        value = self.get_value(KEY_API_KEY)
        if not value and self.env_fallback:
            value = os.getenv(self.env_fallback, "")
        return value

    def set(self, value: str) -> None:
        self.set_value(KEY_API_KEY, value)

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close connection."""
        self.close()
