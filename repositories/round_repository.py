"""
Repository for classic post-vs-post rounds.

Status transitions here are conditional writes: each one names the status it
expects to leave, and the caller inspects the returned flag to learn whether
it won the transition.
"""

import logging

from domain.models.round import (
    ROUND_ACTIVE,
    ROUND_FINISHED,
    ROUND_PENDING_PAYOUT,
    GameRound,
    PostSnapshot,
)
from repositories.base_repository import BaseRepository
from repositories.interfaces import IRoundRepository
from services import error_codes
from services.errors import StateConflictError

logger = logging.getLogger("gamerit.repositories.round")


class RoundRepository(BaseRepository, IRoundRepository):
    """Data access for the game_rounds table."""

    def create_round_atomic(
        self,
        post_a: PostSnapshot,
        post_b: PostSnapshot,
        duration_seconds: int,
        now: int,
    ) -> int:
        """
        Insert a new active round, provided no other round is active.

        The active check and the insert share one immediate-lock transaction,
        so two concurrent creators cannot both succeed.

        Raises:
            StateConflictError: another round is already active
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT round_id FROM game_rounds WHERE status = ? LIMIT 1",
                (ROUND_ACTIVE,),
            )
            if cursor.fetchone():
                raise StateConflictError(
                    "An active round already exists",
                    code=error_codes.ACTIVE_ROUND_EXISTS,
                )
            cursor.execute(
                """
                INSERT INTO game_rounds (
                    created_at, duration_seconds,
                    post_a_id, post_a_title, post_a_author, post_a_subreddit, post_a_initial_score,
                    post_b_id, post_b_title, post_b_author, post_b_subreddit, post_b_initial_score,
                    status
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    now,
                    duration_seconds,
                    post_a.post_id,
                    post_a.title,
                    post_a.author,
                    post_a.subreddit,
                    post_a.score,
                    post_b.post_id,
                    post_b.title,
                    post_b.author,
                    post_b.subreddit,
                    post_b.score,
                    ROUND_ACTIVE,
                ),
            )
            return cursor.lastrowid

    def get_round(self, round_id: int) -> GameRound | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM game_rounds WHERE round_id = ?", (round_id,))
            row = cursor.fetchone()
            return GameRound.from_row(row) if row else None

    def get_active_rounds(self) -> list[GameRound]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM game_rounds WHERE status = ? ORDER BY created_at DESC",
                (ROUND_ACTIVE,),
            )
            return [GameRound.from_row(row) for row in cursor.fetchall()]

    def has_active_round(self) -> bool:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM game_rounds WHERE status = ? LIMIT 1",
                (ROUND_ACTIVE,),
            )
            return cursor.fetchone() is not None

    def get_latest_created_at(self) -> int | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT MAX(created_at) AS latest FROM game_rounds")
            row = cursor.fetchone()
            return row["latest"] if row else None

    def get_previous_rounds(self, limit: int = 10) -> list[GameRound]:
        """Most recently settled rounds first."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM game_rounds
                WHERE status = ?
                ORDER BY created_at DESC, round_id DESC
                LIMIT ?
                """,
                (ROUND_FINISHED, limit),
            )
            return [GameRound.from_row(row) for row in cursor.fetchall()]

    def get_due_rounds(self, now: int) -> list[GameRound]:
        """Active rounds whose deadline has passed."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM game_rounds
                WHERE status = ? AND created_at + duration_seconds <= ?
                ORDER BY created_at ASC
                """,
                (ROUND_ACTIVE, now),
            )
            return [GameRound.from_row(row) for row in cursor.fetchall()]

    def get_pending_payout_rounds(self) -> list[GameRound]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM game_rounds WHERE status = ? ORDER BY created_at ASC",
                (ROUND_PENDING_PAYOUT,),
            )
            return [GameRound.from_row(row) for row in cursor.fetchall()]

    def get_recent_post_ids(self, limit: int) -> set[str]:
        """Post ids used by either side of the last `limit` rounds."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT post_a_id, post_b_id FROM game_rounds
                ORDER BY created_at DESC, round_id DESC
                LIMIT ?
                """,
                (limit,),
            )
            used: set[str] = set()
            for row in cursor.fetchall():
                used.add(row["post_a_id"])
                used.add(row["post_b_id"])
            return used

    def mark_pending_payout(
        self,
        round_id: int,
        post_a_final_score: int,
        post_b_final_score: int,
        winner: str,
        now: int,
    ) -> bool:
        """
        Transition active -> pending_payout, recording the outcome.

        Returns False when the round was no longer active, meaning another
        settlement pass already claimed it.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE game_rounds
                SET status = ?,
                    post_a_final_score = ?,
                    post_b_final_score = ?,
                    winner = ?,
                    settled_at = ?
                WHERE round_id = ? AND status = ?
                """,
                (
                    ROUND_PENDING_PAYOUT,
                    post_a_final_score,
                    post_b_final_score,
                    winner,
                    now,
                    round_id,
                    ROUND_ACTIVE,
                ),
            )
            return cursor.rowcount > 0

    def mark_finished(self, round_id: int) -> bool:
        """Transition pending_payout -> finished."""
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE game_rounds SET status = ? WHERE round_id = ? AND status = ?",
                (ROUND_FINISHED, round_id, ROUND_PENDING_PAYOUT),
            )
            return cursor.rowcount > 0

    def get_round_pot(self, round_id: int) -> dict:
        """Total stake and per-side breakdown for a round."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT side, COUNT(*) AS wager_count, COALESCE(SUM(amount), 0) AS total
                FROM wagers
                WHERE round_id = ?
                GROUP BY side
                """,
                (round_id,),
            )
            pot = {
                "A": {"wager_count": 0, "total": 0},
                "B": {"wager_count": 0, "total": 0},
            }
            for row in cursor.fetchall():
                pot[row["side"]] = {"wager_count": row["wager_count"], "total": row["total"]}
            pot["total"] = pot["A"]["total"] + pot["B"]["total"]
            pot["wager_count"] = pot["A"]["wager_count"] + pot["B"]["wager_count"]
            return pot
