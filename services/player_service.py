"""
Service for player accounts: login upsert, balances, welfare and leaderboard.
"""

import logging
import time

from config import STARTING_CHIPS, WELFARE_CHIPS, WELFARE_COOLDOWN_SECONDS
from repositories.interfaces import IPlayerRepository
from services import error_codes
from services.errors import GameritError
from services.interfaces import IPlayerService
from services.result import Result

logger = logging.getLogger("gamerit.services.player")


class PlayerService(IPlayerService):
    """Player account operations."""

    def __init__(
        self,
        player_repo: IPlayerRepository,
        starting_chips: int | None = None,
        welfare_chips: int | None = None,
        welfare_cooldown_seconds: int | None = None,
    ):
        self.player_repo = player_repo
        self.starting_chips = starting_chips if starting_chips is not None else STARTING_CHIPS
        self.welfare_chips = welfare_chips if welfare_chips is not None else WELFARE_CHIPS
        self.welfare_cooldown_seconds = (
            welfare_cooldown_seconds
            if welfare_cooldown_seconds is not None
            else WELFARE_COOLDOWN_SECONDS
        )

    def get_or_create_player(
        self,
        reddit_id: str,
        reddit_username: str,
        avatar_url: str | None = None,
        now: int | None = None,
    ) -> Result[dict]:
        """
        Ensure a player row exists for a logged-in Reddit account.

        First login grants the starting balance; later logins only refresh
        the display name and avatar.
        """
        if not reddit_id or not reddit_username:
            return Result.fail(
                "reddit_id and reddit_username are required",
                code=error_codes.VALIDATION_ERROR,
            )
        now = now if now is not None else int(time.time())
        player, created = self.player_repo.get_or_create(
            reddit_id, reddit_username, avatar_url, self.starting_chips, now
        )
        return Result.ok({"player": player.to_dict(), "created": created})

    def get_player(self, reddit_id: str) -> Result[dict]:
        player = self.player_repo.get_by_reddit_id(reddit_id)
        if player is None:
            return Result.fail("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        return Result.ok({"player": player.to_dict()})

    def claim_welfare(self, reddit_id: str, now: int | None = None) -> Result[dict]:
        """Give a broke player a small restart balance, once per cooldown."""
        now = now if now is not None else int(time.time())
        try:
            player = self.player_repo.claim_welfare_atomic(
                reddit_id, self.welfare_chips, self.welfare_cooldown_seconds, now
            )
        except GameritError as exc:
            return Result.from_error(exc)
        logger.info(f"Welfare of {self.welfare_chips} chips granted to {reddit_id}")
        return Result.ok({"player": player.to_dict(), "granted": self.welfare_chips})

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        return [player.to_dict() for player in self.player_repo.get_leaderboard(limit)]
