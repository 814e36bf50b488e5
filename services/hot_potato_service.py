"""
Service for hot potato rounds: players predict how many hours a
controversial post survives before deletion.

Resolution pays the predictions closest to the actual lifetime (or to the
full window if the post survives) from the pooled stakes.
"""

from __future__ import annotations

import logging
import random
import time

from config import (
    HOT_POTATO_DURATION_SECONDS,
    HOT_POTATO_MAX_ACTIVE,
    HOT_POTATO_MAX_HOURS,
    HOT_POTATO_MAX_POST_AGE_HOURS,
    HOT_POTATO_MAX_UPVOTE_RATIO,
    HOT_POTATO_MIN_COMMENTS,
    HOT_POTATO_RECENT_LOOKBACK,
    HOT_POTATO_SUBREDDITS,
    HOT_POTATO_TARGET_ACTIVE,
    MIN_WAGER,
)
from domain.models.round import (
    HOT_POTATO_DELETED,
    HOT_POTATO_EXPIRED,
    HOT_POTATO_SURVIVED,
    HotPotatoRound,
    PostSnapshot,
)
from repositories.interfaces import IHotPotatoRepository, IPlayerRepository
from services import error_codes
from services.errors import GameritError, UpstreamUnavailableError
from services.interfaces import IContentSource, IHotPotatoService
from services.result import Result

logger = logging.getLogger("gamerit.services.hot_potato")


def controversy_score(post: PostSnapshot) -> int:
    comment_ratio = post.num_comments / max(post.score, 1)
    return round((1 - post.upvote_ratio) * 100 + comment_ratio * 10)


def rank_controversial_posts(
    posts: list[PostSnapshot],
    now: int,
    used_post_ids: set[str] | None = None,
) -> list[PostSnapshot]:
    """
    Filter to posts likely to be deleted soon and rank the most contested first.

    A candidate is young, divisive (low upvote ratio), busy (many comments
    relative to its score) and not already removed.
    """
    used_post_ids = used_post_ids or set()
    eligible = []
    for post in posts:
        if post.post_id in used_post_ids:
            continue
        if "[deleted]" in post.title or "[removed]" in post.title:
            continue
        if post.upvote_ratio >= HOT_POTATO_MAX_UPVOTE_RATIO:
            continue
        if post.num_comments <= HOT_POTATO_MIN_COMMENTS or post.score <= 10:
            continue
        if post.created_utc is not None:
            hours_old = (now - post.created_utc) / 3600
            if hours_old >= HOT_POTATO_MAX_POST_AGE_HOURS:
                continue
        if post.num_comments / max(post.score, 1) <= 0.5:
            continue
        eligible.append(post)

    eligible.sort(
        key=lambda p: (1 - p.upvote_ratio) + p.num_comments / max(p.score, 1),
        reverse=True,
    )
    return eligible


class HotPotatoService(IHotPotatoService):
    """Hot potato round lifecycle and wagers."""

    def __init__(
        self,
        hot_potato_repo: IHotPotatoRepository,
        player_repo: IPlayerRepository,
        content_source: IContentSource | None = None,
        duration_seconds: int | None = None,
        max_hours: int | None = None,
        max_active: int | None = None,
        target_active: int | None = None,
        recent_lookback: int | None = None,
        min_wager: int | None = None,
        subreddits: list[str] | None = None,
        rng: random.Random | None = None,
    ):
        self.hot_potato_repo = hot_potato_repo
        self.player_repo = player_repo
        self.content_source = content_source
        self.duration_seconds = (
            duration_seconds if duration_seconds is not None else HOT_POTATO_DURATION_SECONDS
        )
        self.max_hours = max_hours if max_hours is not None else HOT_POTATO_MAX_HOURS
        self.max_active = max_active if max_active is not None else HOT_POTATO_MAX_ACTIVE
        self.target_active = (
            target_active if target_active is not None else HOT_POTATO_TARGET_ACTIVE
        )
        self.recent_lookback = (
            recent_lookback if recent_lookback is not None else HOT_POTATO_RECENT_LOOKBACK
        )
        self.min_wager = min_wager if min_wager is not None else MIN_WAGER
        self.subreddits = subreddits or HOT_POTATO_SUBREDDITS
        self.rng = rng or random.Random()

    # --- Round creation ---

    def create_hot_potato_round(
        self, post: PostSnapshot, now: int | None = None
    ) -> Result[dict]:
        now = now if now is not None else int(time.time())
        try:
            round_id = self.hot_potato_repo.create_round_atomic(
                post,
                controversy_score(post),
                now,
                self.duration_seconds,
                self.max_active,
                self.recent_lookback,
            )
        except GameritError as exc:
            logger.info(f"Hot potato creation skipped for {post.post_id}: {exc.message}")
            return Result.from_error(exc)

        logger.info(f"Created hot potato round {round_id} for post {post.post_id}")
        return Result.ok({"round": self.hot_potato_repo.get_round(round_id).to_dict()})

    def create_auto_hot_potato_round(self, now: int | None = None) -> Result[dict]:
        """Open one round from a random controversial listing."""
        now = now if now is not None else int(time.time())
        if self.content_source is None:
            return Result.fail("No content source configured", code=error_codes.EXTERNAL_API_ERROR)
        if self.hot_potato_repo.count_active() >= self.max_active:
            return Result.fail(
                f"Maximum of {self.max_active} active hot potato rounds reached",
                code=error_codes.MAX_ACTIVE_ROUNDS,
            )

        subreddit = self.rng.choice(self.subreddits)
        try:
            posts = self.content_source.fetch_listing(subreddit, "controversial", "day")
        except UpstreamUnavailableError as exc:
            return Result.from_error(exc)

        used = self.hot_potato_repo.get_recent_post_ids(self.recent_lookback)
        ranked = rank_controversial_posts(posts, now, used)
        if not ranked:
            return Result.fail(
                f"No suitable controversial posts in r/{subreddit}",
                code=error_codes.NO_ELIGIBLE_POSTS,
            )
        return self.create_hot_potato_round(ranked[0], now)

    def top_up_rounds(self, now: int | None = None) -> list[Result[dict]]:
        """Open rounds until target_active are running, within the hard cap."""
        now = now if now is not None else int(time.time())
        results = []
        missing = min(self.target_active, self.max_active) - self.hot_potato_repo.count_active()
        for _ in range(max(missing, 0)):
            result = self.create_auto_hot_potato_round(now)
            results.append(result)
            if not result.success:
                break
        return results

    # --- Wagers ---

    def place_hot_potato_wager(
        self,
        round_id: int,
        reddit_id: str,
        predicted_hours: int,
        amount: int,
        now: int | None = None,
    ) -> Result[dict]:
        if not 1 <= predicted_hours <= self.max_hours:
            return Result.fail(
                f"Prediction must be between 1 and {self.max_hours} hours",
                code=error_codes.INVALID_PREDICTION,
            )
        if amount < self.min_wager:
            return Result.fail(
                f"Minimum bet is {self.min_wager} chips", code=error_codes.WAGER_TOO_SMALL
            )

        now = now if now is not None else int(time.time())
        try:
            wager = self.hot_potato_repo.place_wager_atomic(
                round_id, reddit_id, predicted_hours, amount, now
            )
        except GameritError as exc:
            return Result.from_error(exc)

        return Result.ok(
            {
                "wager": wager.to_dict(),
                "new_balance": self.player_repo.get_balance(wager.player_id),
            }
        )

    # --- Resolution ---

    def resolve_hot_potato_rounds(self, now: int | None = None) -> dict:
        """
        Check every active round against Reddit and resolve the finished ones.

        Deleted posts resolve to `deleted` with the measured lifetime. Posts
        alive at expiry resolve to `survived`. A post whose status cannot be
        read is assumed deleted at `now` while the round is open. Past expiry
        it resolves to `expired` and pays against the full window.
        """
        now = now if now is not None else int(time.time())
        resolved = []
        refreshed = 0

        for hp_round in self.hot_potato_repo.get_active_rounds():
            expired = now >= hp_round.expires_at
            try:
                post = self.content_source.fetch_post(hp_round.post_id)
            except UpstreamUnavailableError as exc:
                if expired:
                    summary = self._resolve(hp_round, HOT_POTATO_EXPIRED, now, self.max_hours)
                else:
                    logger.warning(
                        f"Could not check hot potato post {hp_round.post_id}; assuming deleted: {exc}"
                    )
                    lifetime = min(hp_round.hours_elapsed(now), self.max_hours)
                    summary = self._resolve(
                        hp_round, HOT_POTATO_DELETED, now, lifetime, deletion_time=now
                    )
            else:
                if post is None:
                    lifetime = min(hp_round.hours_elapsed(now), self.max_hours)
                    summary = self._resolve(
                        hp_round, HOT_POTATO_DELETED, now, lifetime, deletion_time=now
                    )
                else:
                    self.hot_potato_repo.update_final_score(hp_round.round_id, post.score)
                    if not expired:
                        refreshed += 1
                        continue
                    summary = self._resolve(hp_round, HOT_POTATO_SURVIVED, now, self.max_hours)

            if summary is not None:
                resolved.append(summary)

        return {"resolved": resolved, "refreshed": refreshed}

    def _resolve(
        self,
        hp_round: HotPotatoRound,
        status: str,
        now: int,
        target_hours: float,
        deletion_time: int | None = None,
    ) -> dict | None:
        summary = self.hot_potato_repo.resolve_round_atomic(
            hp_round.round_id, status, now, target_hours, deletion_time=deletion_time
        )
        if summary is None:
            logger.info(f"Hot potato round {hp_round.round_id} already resolved elsewhere")
            return None
        logger.info(
            f"Hot potato round {hp_round.round_id} {status} at {target_hours:.2f}h: "
            f"{summary['winner_count']} winner(s), {summary['payout_per_winner']} each "
            f"from pot {summary['total_pot']}"
        )
        return summary

    # --- Reads ---

    def get_active_rounds(self) -> list[dict]:
        rounds = []
        for hp_round in self.hot_potato_repo.get_active_rounds():
            data = hp_round.to_dict()
            wagers = self.hot_potato_repo.get_wagers_for_round(hp_round.round_id)
            data["total_pot"] = sum(w.amount for w in wagers)
            data["wager_count"] = len(wagers)
            rounds.append(data)
        return rounds

    def get_round(self, round_id: int) -> Result[dict]:
        hp_round = self.hot_potato_repo.get_round(round_id)
        if hp_round is None:
            return Result.fail("Round not found", code=error_codes.ROUND_NOT_FOUND)
        data = hp_round.to_dict()
        data["wagers"] = [
            w.to_dict() for w in self.hot_potato_repo.get_wagers_for_round(round_id)
        ]
        return Result.ok({"round": data})
