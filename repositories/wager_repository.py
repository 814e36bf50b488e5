"""
Repository for classic round wagers.
"""

import logging
import sqlite3

from domain.models.round import ROUND_ACTIVE
from domain.models.wager import Wager
from repositories.base_repository import BaseRepository
from repositories.interfaces import IWagerRepository
from services import error_codes
from services.errors import (
    InsufficientFundsError,
    NotFoundError,
    StateConflictError,
)

logger = logging.getLogger("gamerit.repositories.wager")


class WagerRepository(BaseRepository, IWagerRepository):
    """Data access for the wagers table."""

    def place_wager_atomic(
        self,
        round_id: int,
        reddit_id: str,
        side: str,
        amount: int,
        now: int,
    ) -> Wager:
        """
        Debit the player and record the wager in one transaction.

        Checks run inside the write lock in this order: player exists, round
        exists and is accepting wagers, no prior wager, sufficient balance.
        Any failure raises and leaves both the balance and the ledger untouched.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()

            cursor.execute(
                "SELECT player_id, points FROM players WHERE reddit_id = ?",
                (reddit_id,),
            )
            player = cursor.fetchone()
            if not player:
                raise NotFoundError("Player not found", code=error_codes.PLAYER_NOT_FOUND)
            player_id = player["player_id"]

            cursor.execute(
                "SELECT status, created_at, duration_seconds FROM game_rounds WHERE round_id = ?",
                (round_id,),
            )
            round_row = cursor.fetchone()
            if not round_row:
                raise NotFoundError("Round not found", code=error_codes.ROUND_NOT_FOUND)
            if (
                round_row["status"] != ROUND_ACTIVE
                or now >= round_row["created_at"] + round_row["duration_seconds"]
            ):
                raise StateConflictError(
                    "Round is not active", code=error_codes.ROUND_NOT_ACTIVE
                )

            cursor.execute(
                "SELECT 1 FROM wagers WHERE round_id = ? AND player_id = ?",
                (round_id, player_id),
            )
            if cursor.fetchone():
                raise StateConflictError(
                    "You have already placed a bet on this round",
                    code=error_codes.DUPLICATE_WAGER,
                )

            if player["points"] < amount:
                raise InsufficientFundsError(
                    f"Insufficient points: have {player['points']}, need {amount}"
                )

            if not self._apply_balance_delta(cursor, player_id, -amount, now, require_funds=True):
                raise InsufficientFundsError("Insufficient points")

            try:
                cursor.execute(
                    """
                    INSERT INTO wagers (round_id, player_id, side, amount, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (round_id, player_id, side, amount, now),
                )
            except sqlite3.IntegrityError as exc:
                raise StateConflictError(
                    "You have already placed a bet on this round",
                    code=error_codes.DUPLICATE_WAGER,
                ) from exc

            return Wager(
                wager_id=cursor.lastrowid,
                round_id=round_id,
                player_id=player_id,
                side=side,
                amount=amount,
                created_at=now,
            )

    def get_wagers_for_round(self, round_id: int) -> list[Wager]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM wagers WHERE round_id = ? ORDER BY wager_id",
                (round_id,),
            )
            return [Wager.from_row(row) for row in cursor.fetchall()]

    def get_player_wager(self, round_id: int, player_id: int) -> Wager | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM wagers WHERE round_id = ? AND player_id = ?",
                (round_id, player_id),
            )
            row = cursor.fetchone()
            return Wager.from_row(row) if row else None

    def get_unpaid_winning_wagers(self, round_id: int, side: str) -> list[Wager]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM wagers
                WHERE round_id = ? AND side = ? AND paid_at IS NULL
                ORDER BY wager_id
                """,
                (round_id, side),
            )
            return [Wager.from_row(row) for row in cursor.fetchall()]

    def pay_wager_atomic(self, wager_id: int, player_id: int, payout: int, now: int) -> bool:
        """
        Stamp a wager as paid and credit its owner, at most once.

        The stamp is conditional on paid_at still being NULL; the credit only
        happens when the stamp changed a row. Returns whether this call paid.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE wagers
                SET paid_at = ?, payout = ?
                WHERE wager_id = ? AND paid_at IS NULL
                """,
                (now, payout, wager_id),
            )
            if cursor.rowcount == 0:
                return False
            if not self._apply_balance_delta(cursor, player_id, payout, now):
                raise NotFoundError(
                    f"Player {player_id} not found for wager {wager_id}",
                    code=error_codes.PLAYER_NOT_FOUND,
                )
            return True

    def get_player_history(self, player_id: int, limit: int = 20) -> list[dict]:
        """A player's classic wagers with their round outcome, newest first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT w.wager_id, w.round_id, w.side, w.amount, w.created_at, w.payout,
                       r.status, r.winner, r.post_a_title, r.post_b_title
                FROM wagers w
                JOIN game_rounds r ON r.round_id = w.round_id
                WHERE w.player_id = ?
                ORDER BY w.created_at DESC, w.wager_id DESC
                LIMIT ?
                """,
                (player_id, limit),
            )
            history = []
            for row in cursor.fetchall():
                if row["winner"] is None:
                    outcome = "pending"
                elif row["winner"] == row["side"]:
                    outcome = "won"
                else:
                    outcome = "lost"
                history.append(
                    {
                        "wager_id": row["wager_id"],
                        "round_id": row["round_id"],
                        "side": row["side"],
                        "amount": row["amount"],
                        "created_at": row["created_at"],
                        "payout": row["payout"] or 0,
                        "round_status": row["status"],
                        "winner": row["winner"],
                        "outcome": outcome,
                        "post_a_title": row["post_a_title"],
                        "post_b_title": row["post_b_title"],
                    }
                )
            return history
