"""
Repository for hot potato rounds and their deletion-time predictions.
"""

import logging
import sqlite3

from domain.models.round import HOT_POTATO_ACTIVE, HotPotatoRound, PostSnapshot
from domain.models.wager import HotPotatoWager
from repositories.base_repository import BaseRepository
from repositories.interfaces import IHotPotatoRepository
from services import error_codes
from services.errors import InsufficientFundsError, NotFoundError, StateConflictError

logger = logging.getLogger("gamerit.repositories.hot_potato")


class HotPotatoRepository(BaseRepository, IHotPotatoRepository):
    """Data access for hot_potato_rounds and hot_potato_wagers."""

    def create_round_atomic(
        self,
        post: PostSnapshot,
        controversy_score: int,
        now: int,
        duration_seconds: int,
        max_active: int,
        recent_lookback: int,
    ) -> int:
        """
        Insert an active hot potato round under the concurrency cap.

        Raises:
            StateConflictError: cap reached, or the post was used recently
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*) AS active FROM hot_potato_rounds WHERE status = ?",
                (HOT_POTATO_ACTIVE,),
            )
            if cursor.fetchone()["active"] >= max_active:
                raise StateConflictError(
                    f"Maximum of {max_active} active hot potato rounds reached",
                    code=error_codes.MAX_ACTIVE_ROUNDS,
                )

            cursor.execute(
                """
                SELECT post_id FROM hot_potato_rounds
                ORDER BY created_at DESC, round_id DESC
                LIMIT ?
                """,
                (recent_lookback,),
            )
            if post.post_id in {row["post_id"] for row in cursor.fetchall()}:
                raise StateConflictError(
                    "Post was used in a recent hot potato round",
                    code=error_codes.POST_RECENTLY_USED,
                )

            cursor.execute(
                """
                INSERT INTO hot_potato_rounds (
                    post_id, post_title, post_author, post_subreddit, post_url,
                    controversy_score, initial_score, final_score,
                    created_at, expires_at, status
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    post.post_id,
                    post.title,
                    post.author,
                    post.subreddit,
                    post.url,
                    controversy_score,
                    post.score,
                    post.score,
                    now,
                    now + duration_seconds,
                    HOT_POTATO_ACTIVE,
                ),
            )
            return cursor.lastrowid

    def get_round(self, round_id: int) -> HotPotatoRound | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM hot_potato_rounds WHERE round_id = ?", (round_id,))
            row = cursor.fetchone()
            return HotPotatoRound.from_row(row) if row else None

    def get_active_rounds(self) -> list[HotPotatoRound]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM hot_potato_rounds WHERE status = ? ORDER BY created_at ASC",
                (HOT_POTATO_ACTIVE,),
            )
            return [HotPotatoRound.from_row(row) for row in cursor.fetchall()]

    def count_active(self) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*) AS active FROM hot_potato_rounds WHERE status = ?",
                (HOT_POTATO_ACTIVE,),
            )
            return cursor.fetchone()["active"]

    def get_recent_post_ids(self, limit: int) -> set[str]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT post_id FROM hot_potato_rounds
                ORDER BY created_at DESC, round_id DESC
                LIMIT ?
                """,
                (limit,),
            )
            return {row["post_id"] for row in cursor.fetchall()}

    def place_wager_atomic(
        self,
        round_id: int,
        reddit_id: str,
        predicted_hours: int,
        amount: int,
        now: int,
    ) -> HotPotatoWager:
        """Debit the player and record the prediction in one transaction."""
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
                "SELECT status, expires_at FROM hot_potato_rounds WHERE round_id = ?",
                (round_id,),
            )
            round_row = cursor.fetchone()
            if not round_row:
                raise NotFoundError("Round not found", code=error_codes.ROUND_NOT_FOUND)
            # An expired round awaiting the resolver has a known outcome.
            if round_row["status"] != HOT_POTATO_ACTIVE or now >= round_row["expires_at"]:
                raise StateConflictError("Round is not active", code=error_codes.ROUND_NOT_ACTIVE)

            cursor.execute(
                "SELECT 1 FROM hot_potato_wagers WHERE round_id = ? AND player_id = ?",
                (round_id, player_id),
            )
            if cursor.fetchone():
                raise StateConflictError(
                    "You have already placed a bet on this round",
                    code=error_codes.DUPLICATE_WAGER,
                )

            if not self._apply_balance_delta(cursor, player_id, -amount, now, require_funds=True):
                raise InsufficientFundsError(
                    f"Insufficient points: have {player['points']}, need {amount}"
                )

            try:
                cursor.execute(
                    """
                    INSERT INTO hot_potato_wagers
                        (round_id, player_id, predicted_hours, amount, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (round_id, player_id, predicted_hours, amount, now),
                )
            except sqlite3.IntegrityError as exc:
                raise StateConflictError(
                    "You have already placed a bet on this round",
                    code=error_codes.DUPLICATE_WAGER,
                ) from exc

            return HotPotatoWager(
                wager_id=cursor.lastrowid,
                round_id=round_id,
                player_id=player_id,
                predicted_hours=predicted_hours,
                amount=amount,
                created_at=now,
            )

    def get_wagers_for_round(self, round_id: int) -> list[HotPotatoWager]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM hot_potato_wagers WHERE round_id = ? ORDER BY wager_id",
                (round_id,),
            )
            return [HotPotatoWager.from_row(row) for row in cursor.fetchall()]

    def update_final_score(self, round_id: int, score: int) -> bool:
        """Refresh the tracked score of a still-active round."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE hot_potato_rounds SET final_score = ? WHERE round_id = ? AND status = ?",
                (score, round_id, HOT_POTATO_ACTIVE),
            )
            return cursor.rowcount > 0

    @staticmethod
    def _closest_predictions(rows, target_hours: float) -> list:
        """Rows whose prediction is nearest the target; ties all win."""
        if not rows:
            return []
        best = min(abs(row["predicted_hours"] - target_hours) for row in rows)
        return [row for row in rows if abs(row["predicted_hours"] - target_hours) == best]

    def resolve_round_atomic(
        self,
        round_id: int,
        status: str,
        now: int,
        target_hours: float,
        deletion_time: int | None = None,
    ) -> dict | None:
        """
        Move an active round to a terminal status and pay the closest predictions.

        The pot (sum of all stakes) is split evenly across winners with integer
        division; any remainder is not paid out. Everything happens in one
        transaction guarded by the round still being active.

        Returns:
            Summary dict, or None if the round had already been resolved.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE hot_potato_rounds
                SET status = ?, actual_deletion_time = ?, resolved_at = ?
                WHERE round_id = ? AND status = ?
                """,
                (status, deletion_time, now, round_id, HOT_POTATO_ACTIVE),
            )
            if cursor.rowcount == 0:
                return None

            cursor.execute(
                """
                SELECT wager_id, player_id, predicted_hours, amount
                FROM hot_potato_wagers
                WHERE round_id = ? AND paid_at IS NULL
                """,
                (round_id,),
            )
            rows = cursor.fetchall()
            total_pot = sum(row["amount"] for row in rows)
            winners = self._closest_predictions(rows, target_hours)
            payout = total_pot // len(winners) if winners else 0

            for row in winners:
                cursor.execute(
                    "UPDATE hot_potato_wagers SET payout = ?, paid_at = ? WHERE wager_id = ?",
                    (payout, now, row["wager_id"]),
                )
                self._apply_balance_delta(cursor, row["player_id"], payout, now)

            winner_ids = {row["wager_id"] for row in winners}
            cursor.executemany(
                "UPDATE hot_potato_wagers SET payout = 0, paid_at = ? WHERE wager_id = ?",
                [(now, row["wager_id"]) for row in rows if row["wager_id"] not in winner_ids],
            )

            return {
                "round_id": round_id,
                "status": status,
                "target_hours": target_hours,
                "total_pot": total_pot,
                "winner_count": len(winners),
                "payout_per_winner": payout,
                "winning_player_ids": [row["player_id"] for row in winners],
            }
