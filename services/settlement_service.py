"""
Settlement engine for classic rounds.

A settlement pass runs in three steps per due round:

1. Fetch final scores (falling back to the initial score per side).
2. Fence: flip active -> pending_payout with the outcome in one conditional
   write. Losing that write means another pass owns the round.
3. Pay each winning wager in its own transaction, keyed on the wager's
   paid_at stamp, then flip pending_payout -> finished.

A pass that stops during step 3 leaves the round in pending_payout; the next
pass picks it up and pays only the wagers that are still unstamped.
"""

from __future__ import annotations

import logging
import random
import sqlite3
import time
from dataclasses import dataclass, field

from config import WINNER_PAYOUT_MULTIPLIER
from domain.models.round import SIDE_A, SIDE_B, GameRound, PostSnapshot
from repositories.interfaces import IRoundRepository, IWagerRepository
from services.errors import GameritError, UpstreamUnavailableError
from services.interfaces import IContentSource, ISettlementService

logger = logging.getLogger("gamerit.services.settlement")


def determine_winner(score_a: int, score_b: int, rng: random.Random) -> str:
    """Higher score wins; an exact tie is decided by an unweighted coin flip."""
    if score_a > score_b:
        return SIDE_A
    if score_b > score_a:
        return SIDE_B
    return rng.choice([SIDE_A, SIDE_B])


@dataclass
class RoundSettlement:
    """Outcome of settling (or resuming) one round."""

    round_id: int
    winner: str | None
    post_a_final_score: int | None = None
    post_b_final_score: int | None = None
    fallbacks: list[str] = field(default_factory=list)
    wagers_paid: int = 0
    total_paid: int = 0
    failed_payouts: int = 0
    finished: bool = False
    resumed: bool = False

    def to_dict(self) -> dict:
        return {
            "round_id": self.round_id,
            "winner": self.winner,
            "post_a_final_score": self.post_a_final_score,
            "post_b_final_score": self.post_b_final_score,
            "fallbacks": self.fallbacks,
            "wagers_paid": self.wagers_paid,
            "total_paid": self.total_paid,
            "failed_payouts": self.failed_payouts,
            "finished": self.finished,
            "resumed": self.resumed,
        }


class SettlementService(ISettlementService):
    """Closes due classic rounds and pays winners exactly once."""

    def __init__(
        self,
        round_repo: IRoundRepository,
        wager_repo: IWagerRepository,
        content_source: IContentSource,
        payout_multiplier: int | None = None,
        rng: random.Random | None = None,
    ):
        self.round_repo = round_repo
        self.wager_repo = wager_repo
        self.content_source = content_source
        self.payout_multiplier = (
            payout_multiplier if payout_multiplier is not None else WINNER_PAYOUT_MULTIPLIER
        )
        self.rng = rng or random.Random()

    def settle_due_rounds(self, now: int | None = None) -> dict:
        """
        Settle every active round past its deadline and resume stalled payouts.

        Safe to call concurrently and repeatedly.

        Returns:
            Summary with one entry per round this call acted on.
        """
        now = now if now is not None else int(time.time())
        settlements: list[RoundSettlement] = []
        skipped: list[int] = []
        handled: set[int] = set()

        for game_round in self.round_repo.get_due_rounds(now):
            handled.add(game_round.round_id)
            settlement = self._close_round(game_round, now)
            if settlement is None:
                skipped.append(game_round.round_id)
            else:
                settlements.append(settlement)

        for game_round in self.round_repo.get_pending_payout_rounds():
            if game_round.round_id in handled:
                continue
            logger.info(f"Resuming payout for round {game_round.round_id}")
            settlement = RoundSettlement(
                round_id=game_round.round_id,
                winner=game_round.winner,
                post_a_final_score=game_round.post_a_final_score,
                post_b_final_score=game_round.post_b_final_score,
                resumed=True,
            )
            self._pay_round(settlement, now)
            settlements.append(settlement)

        return {
            "rounds_processed": len(settlements),
            "rounds_skipped": skipped,
            "total_paid": sum(s.total_paid for s in settlements),
            "rounds": [s.to_dict() for s in settlements],
        }

    def _final_score(self, post: PostSnapshot, fallbacks: list[str], label: str) -> int:
        try:
            return self.content_source.fetch_score(post.post_id)
        except UpstreamUnavailableError as exc:
            logger.warning(
                f"Score fetch failed for post {post.post_id}; using initial score "
                f"{post.score}: {exc}"
            )
            fallbacks.append(label)
            return post.score

    def _close_round(self, game_round: GameRound, now: int) -> RoundSettlement | None:
        fallbacks: list[str] = []
        score_a = self._final_score(game_round.post_a, fallbacks, SIDE_A)
        score_b = self._final_score(game_round.post_b, fallbacks, SIDE_B)
        winner = determine_winner(score_a, score_b, self.rng)

        if not self.round_repo.mark_pending_payout(
            game_round.round_id, score_a, score_b, winner, now
        ):
            logger.info(f"Round {game_round.round_id} already claimed by another settlement")
            return None

        logger.info(
            f"Round {game_round.round_id} closed: A={score_a} B={score_b} winner={winner}"
            + (" (tie broken by coin flip)" if score_a == score_b else "")
        )
        settlement = RoundSettlement(
            round_id=game_round.round_id,
            winner=winner,
            post_a_final_score=score_a,
            post_b_final_score=score_b,
            fallbacks=fallbacks,
        )
        self._pay_round(settlement, now)
        return settlement

    def _pay_round(self, settlement: RoundSettlement, now: int) -> None:
        if settlement.winner is None:
            logger.error(f"Round {settlement.round_id} is pending payout without a winner")
            return

        for wager in self.wager_repo.get_unpaid_winning_wagers(
            settlement.round_id, settlement.winner
        ):
            payout = wager.amount * self.payout_multiplier
            try:
                paid = self.wager_repo.pay_wager_atomic(
                    wager.wager_id, wager.player_id, payout, now
                )
            except (sqlite3.Error, GameritError):
                logger.exception(
                    f"Payout failed for wager {wager.wager_id} (round {settlement.round_id}, "
                    f"player {wager.player_id}, amount {payout}); will retry next pass"
                )
                settlement.failed_payouts += 1
                continue
            if paid:
                settlement.wagers_paid += 1
                settlement.total_paid += payout

        if settlement.failed_payouts:
            logger.warning(
                f"Round {settlement.round_id} left in pending_payout with "
                f"{settlement.failed_payouts} unpaid wager(s)"
            )
            return

        settlement.finished = self.round_repo.mark_finished(settlement.round_id)
        if settlement.finished:
            logger.info(
                f"Round {settlement.round_id} finished: paid {settlement.wagers_paid} "
                f"wager(s), {settlement.total_paid} chips"
            )
        else:
            logger.info(f"Round {settlement.round_id} already finished by another settlement")
