"""
Service for placing wagers on classic rounds.
"""

import logging
import time

from config import MIN_WAGER
from domain.models.round import SIDES
from repositories.interfaces import IPlayerRepository, IWagerRepository
from services import error_codes
from services.errors import GameritError
from services.interfaces import IWagerService
from services.result import Result

logger = logging.getLogger("gamerit.services.wager")


class WagerService(IWagerService):
    """Wager ledger entry point for classic rounds."""

    def __init__(
        self,
        wager_repo: IWagerRepository,
        player_repo: IPlayerRepository,
        min_wager: int | None = None,
    ):
        self.wager_repo = wager_repo
        self.player_repo = player_repo
        self.min_wager = min_wager if min_wager is not None else MIN_WAGER

    def place_wager(
        self,
        round_id: int,
        reddit_id: str,
        side: str,
        amount: int,
        now: int | None = None,
    ) -> Result[dict]:
        """
        Stake `amount` chips on side A or B of an active round.

        The debit and the ledger row are written together; on any failure
        neither happens.
        """
        side = (side or "").upper()
        if side not in SIDES:
            return Result.fail(f"Invalid side: {side or 'missing'}", code=error_codes.INVALID_SIDE)
        if amount < self.min_wager:
            return Result.fail(
                f"Minimum bet is {self.min_wager} chips", code=error_codes.WAGER_TOO_SMALL
            )

        now = now if now is not None else int(time.time())
        try:
            wager = self.wager_repo.place_wager_atomic(round_id, reddit_id, side, amount, now)
        except GameritError as exc:
            return Result.from_error(exc)

        balance = self.player_repo.get_balance(wager.player_id)
        logger.info(
            f"Wager {wager.wager_id}: player {wager.player_id} staked {amount} on {side} "
            f"in round {round_id}"
        )
        return Result.ok({"wager": wager.to_dict(), "new_balance": balance})

    def get_round_wagers(self, round_id: int) -> list[dict]:
        return [wager.to_dict() for wager in self.wager_repo.get_wagers_for_round(round_id)]

    def get_player_wager(self, round_id: int, reddit_id: str) -> Result[dict]:
        player = self.player_repo.get_by_reddit_id(reddit_id)
        if player is None:
            return Result.fail("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        wager = self.wager_repo.get_player_wager(round_id, player.player_id)
        return Result.ok({"wager": wager.to_dict() if wager else None})

    def get_player_history(self, reddit_id: str, limit: int = 20) -> Result[list[dict]]:
        player = self.player_repo.get_by_reddit_id(reddit_id)
        if player is None:
            return Result.fail("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        return Result.ok(self.wager_repo.get_player_history(player.player_id, limit))
