"""
Repository for player accounts and balances.
"""

import logging

from domain.models.player import Player
from repositories.base_repository import BaseRepository
from repositories.interfaces import IPlayerRepository
from services import error_codes
from services.errors import NotFoundError, StateConflictError

logger = logging.getLogger("gamerit.repositories.player")

_PLAYER_COLUMNS = """
    player_id, reddit_id, reddit_username, avatar_url, points, xp, level,
    lowest_points, highest_points, last_welfare_claim, created_at
"""


class PlayerRepository(BaseRepository, IPlayerRepository):
    """Data access for the players table."""

    def get_or_create(
        self,
        reddit_id: str,
        reddit_username: str,
        avatar_url: str | None,
        starting_points: int,
        now: int,
    ) -> tuple[Player, bool]:
        """
        Upsert a player keyed on reddit_id.

        New players start with starting_points. Returning players get their
        username and avatar refreshed; their balance is untouched.

        Returns:
            (player, created) tuple
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT player_id FROM players WHERE reddit_id = ?",
                (reddit_id,),
            )
            existing = cursor.fetchone()
            if existing:
                cursor.execute(
                    """
                    UPDATE players
                    SET reddit_username = ?,
                        avatar_url = COALESCE(?, avatar_url),
                        updated_at = ?
                    WHERE player_id = ?
                    """,
                    (reddit_username, avatar_url, now, existing["player_id"]),
                )
                created = False
            else:
                cursor.execute(
                    """
                    INSERT INTO players (
                        reddit_id, reddit_username, avatar_url, points,
                        lowest_points, highest_points, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        reddit_id,
                        reddit_username,
                        avatar_url,
                        starting_points,
                        starting_points,
                        starting_points,
                        now,
                        now,
                    ),
                )
                created = True
                logger.info(f"Created player {reddit_username} ({reddit_id})")

            cursor.execute(
                f"SELECT {_PLAYER_COLUMNS} FROM players WHERE reddit_id = ?",
                (reddit_id,),
            )
            return Player.from_row(cursor.fetchone()), created

    def get_by_reddit_id(self, reddit_id: str) -> Player | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_PLAYER_COLUMNS} FROM players WHERE reddit_id = ?",
                (reddit_id,),
            )
            row = cursor.fetchone()
            return Player.from_row(row) if row else None

    def get_by_id(self, player_id: int) -> Player | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_PLAYER_COLUMNS} FROM players WHERE player_id = ?",
                (player_id,),
            )
            row = cursor.fetchone()
            return Player.from_row(row) if row else None

    def get_balance(self, player_id: int) -> int:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT points FROM players WHERE player_id = ?", (player_id,))
            row = cursor.fetchone()
            return row["points"] if row else 0

    def get_leaderboard(self, limit: int = 10) -> list[Player]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_PLAYER_COLUMNS} FROM players
                ORDER BY points DESC, player_id ASC
                LIMIT ?
                """,
                (limit,),
            )
            return [Player.from_row(row) for row in cursor.fetchall()]

    def claim_welfare_atomic(
        self, reddit_id: str, amount: int, cooldown_seconds: int, now: int
    ) -> Player:
        """
        Grant welfare chips to a broke player, at most once per cooldown.

        Raises:
            NotFoundError: unknown player
            StateConflictError: player still has points, or is within cooldown
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT player_id, points, last_welfare_claim FROM players WHERE reddit_id = ?",
                (reddit_id,),
            )
            row = cursor.fetchone()
            if not row:
                raise NotFoundError("Player not found", code=error_codes.PLAYER_NOT_FOUND)
            if row["points"] > 0:
                raise StateConflictError(
                    "Welfare is only available to players with no chips",
                    code=error_codes.WELFARE_NOT_ELIGIBLE,
                )
            last_claim = row["last_welfare_claim"]
            if last_claim is not None and now - last_claim < cooldown_seconds:
                raise StateConflictError(
                    "Welfare already claimed recently",
                    code=error_codes.WELFARE_COOLDOWN,
                )

            self._apply_balance_delta(cursor, row["player_id"], amount, now)
            cursor.execute(
                "UPDATE players SET last_welfare_claim = ? WHERE player_id = ?",
                (now, row["player_id"]),
            )
            cursor.execute(
                f"SELECT {_PLAYER_COLUMNS} FROM players WHERE player_id = ?",
                (row["player_id"],),
            )
            return Player.from_row(cursor.fetchone())
