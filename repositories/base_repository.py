"""
Base repository with common database operations.
"""

import logging
import sqlite3
from abc import ABC
from contextlib import contextmanager

from database import Database

logger = logging.getLogger("gamerit.repositories")


class BaseRepository(ABC):
    """
    Base class for all repositories.

    Provides common database connection management and utilities.
    """

    # Track DB paths that have already had schema initialization performed
    _schema_initialized_paths = set()

    def __init__(self, db_path: str):
        """
        Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        # Ensure schema is initialized for this database path (idempotent)
        if db_path not in BaseRepository._schema_initialized_paths:
            Database(db_path)
            BaseRepository._schema_initialized_paths.add(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory enabled."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextmanager
    def connection(self):
        """
        Context manager for database connections.

        Automatically commits on success, rolls back on exception,
        and always closes the connection.
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def atomic_transaction(self):
        """
        Context manager for atomic transactions with immediate write lock.

        Uses BEGIN IMMEDIATE to take the write lock up front, so a
        read-check-write sequence (balance check then debit, status check then
        transition) cannot interleave with another writer.

        Usage:
            with self.atomic_transaction() as conn:
                cursor = conn.cursor()
                cursor.execute(...)

        The transaction commits on success and rolls back on exception.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _apply_balance_delta(
        cursor, player_id: int, delta: int, now: int, require_funds: bool = False
    ) -> bool:
        """
        Apply a signed change to a player's points and lifetime extremes.

        SQLite evaluates every SET expression against the pre-update row, so the
        lowest/highest trackers see the same old balance as the points update.

        With require_funds the update only applies when the result stays
        non-negative. Returns whether a row was changed.
        """
        sql = """
            UPDATE players
            SET points = points + ?,
                lowest_points = MIN(COALESCE(lowest_points, points), points + ?),
                highest_points = MAX(COALESCE(highest_points, points), points + ?),
                updated_at = ?
            WHERE player_id = ?
        """
        params = [delta, delta, delta, now, player_id]
        if require_funds:
            sql += " AND points + ? >= 0"
            params.append(delta)
        cursor.execute(sql, params)
        return cursor.rowcount > 0
