"""
Database entry point.

Opening a Database ensures the schema exists and all migrations are applied.
"""

import logging
import sqlite3

from infrastructure.schema_manager import SchemaManager

logger = logging.getLogger("gamerit.database")


class Database:
    """Thin handle around a SQLite file with schema initialization."""

    def __init__(self, db_path: str = "gamerit.db"):
        self.db_path = db_path
        SchemaManager(db_path).initialize()

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn
