"""
Repository for meme stock instruments and their price history.
"""

import json
import logging

from domain.models.stock import MemeStock
from repositories.base_repository import BaseRepository
from repositories.interfaces import IMemeStockRepository
from services import error_codes
from services.errors import NotFoundError, StateConflictError

logger = logging.getLogger("gamerit.repositories.meme_stock")


class MemeStockRepository(BaseRepository, IMemeStockRepository):
    """Data access for the meme_stocks table."""

    def get_stock(self, stock_id: int) -> MemeStock | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM meme_stocks WHERE stock_id = ?", (stock_id,))
            row = cursor.fetchone()
            return MemeStock.from_row(row) if row else None

    def get_by_keyword(self, keyword: str) -> MemeStock | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM meme_stocks WHERE keyword = ?",
                (keyword.lower(),),
            )
            row = cursor.fetchone()
            return MemeStock.from_row(row) if row else None

    def list_stocks(self, active_only: bool = True) -> list[MemeStock]:
        with self.connection() as conn:
            cursor = conn.cursor()
            if active_only:
                cursor.execute(
                    "SELECT * FROM meme_stocks WHERE is_active = 1 ORDER BY current_value DESC"
                )
            else:
                cursor.execute("SELECT * FROM meme_stocks ORDER BY current_value DESC")
            return [MemeStock.from_row(row) for row in cursor.fetchall()]

    def create_stock(self, keyword: str, initial_value: int, now: int) -> int:
        history = json.dumps([{"timestamp": now, "value": initial_value}])
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM meme_stocks WHERE keyword = ?",
                (keyword.lower(),),
            )
            if cursor.fetchone():
                raise StateConflictError(f"Stock '{keyword}' already exists")
            cursor.execute(
                """
                INSERT INTO meme_stocks
                    (keyword, current_value, history, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
                """,
                (keyword.lower(), initial_value, history, now, now),
            )
            return cursor.lastrowid

    def record_price(self, stock_id: int, value: int, now: int, window_seconds: int) -> MemeStock:
        """
        Set the current price and append it to history.

        History entries older than window_seconds are dropped on every append.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT history FROM meme_stocks WHERE stock_id = ?", (stock_id,))
            row = cursor.fetchone()
            if not row:
                raise NotFoundError("Stock not found", code=error_codes.STOCK_NOT_FOUND)

            cutoff = now - window_seconds
            history = [
                point
                for point in json.loads(row["history"] or "[]")
                if point.get("timestamp", 0) >= cutoff
            ]
            history.append({"timestamp": now, "value": value})

            cursor.execute(
                """
                UPDATE meme_stocks
                SET current_value = ?, history = ?, updated_at = ?
                WHERE stock_id = ?
                """,
                (value, json.dumps(history), now, stock_id),
            )
            cursor.execute("SELECT * FROM meme_stocks WHERE stock_id = ?", (stock_id,))
            return MemeStock.from_row(cursor.fetchone())

    def set_active(self, stock_id: int, is_active: bool, now: int) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE meme_stocks SET is_active = ?, updated_at = ? WHERE stock_id = ?",
                (1 if is_active else 0, now, stock_id),
            )
            return cursor.rowcount > 0
