"""
Service for the classic round store: admission control, content selection
and read access.

Only one classic round is active at a time. A new one is due once the
previous round is older than the round duration minus a safety margin, so a
scheduler firing every few minutes opens exactly one round per day.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass

from config import (
    CLASSIC_MAX_TITLE_LENGTH,
    CLASSIC_MIN_SCORE,
    CLASSIC_MIN_TITLE_LENGTH,
    CLASSIC_SUBREDDIT_SAMPLE,
    CLASSIC_SUBREDDITS,
    RECENT_ROUND_LOOKBACK,
    ROUND_DURATION_SECONDS,
    ROUND_SAFETY_MARGIN_SECONDS,
)
from domain.models.round import PostSnapshot
from repositories.interfaces import IRoundRepository
from services import error_codes
from services.errors import GameritError, UpstreamUnavailableError
from services.interfaces import IContentSource, IRoundService
from services.result import Result

logger = logging.getLogger("gamerit.services.round")

# (sort, time filter) listings sampled per subreddit when picking posts
CANDIDATE_LISTINGS = [("hot", None), ("top", "day"), ("top", "week")]

REASON_ACTIVE_ROUND_EXISTS = "active_round_exists"
REASON_NEW_ROUND_NEEDED = "new_round_needed"
REASON_RECENT_ROUND_EXISTS = "recent_round_exists"


@dataclass
class PostFilter:
    """Eligibility rules for classic round candidates."""

    min_score: int = CLASSIC_MIN_SCORE
    min_title_length: int = CLASSIC_MIN_TITLE_LENGTH
    max_title_length: int = CLASSIC_MAX_TITLE_LENGTH

    def accepts(self, post: PostSnapshot) -> bool:
        if post.over_18 or post.stickied:
            return False
        if post.score < self.min_score:
            return False
        return self.min_title_length <= len(post.title) <= self.max_title_length


def select_post_pair(
    candidates: list[PostSnapshot],
    used_post_ids: set[str],
    post_filter: PostFilter | None = None,
) -> tuple[PostSnapshot, PostSnapshot] | None:
    """
    Pick two posts for a round.

    Post A is the highest-scoring eligible, unused post. Post B is the best
    post from a different subreddit when one exists, otherwise the runner-up.
    Returns None when fewer than two posts qualify.
    """
    post_filter = post_filter or PostFilter()
    seen: set[str] = set()
    eligible: list[PostSnapshot] = []
    for post in candidates:
        if post.post_id in seen or post.post_id in used_post_ids:
            continue
        if not post_filter.accepts(post):
            continue
        seen.add(post.post_id)
        eligible.append(post)

    if len(eligible) < 2:
        return None

    eligible.sort(key=lambda p: p.score, reverse=True)
    post_a = eligible[0]
    post_b = next(
        (p for p in eligible[1:] if p.subreddit != post_a.subreddit),
        eligible[1],
    )
    return post_a, post_b


class RoundService(IRoundService):
    """Opens classic rounds and serves their read models."""

    def __init__(
        self,
        round_repo: IRoundRepository,
        content_source: IContentSource | None = None,
        duration_seconds: int | None = None,
        safety_margin_seconds: int | None = None,
        recent_lookback: int | None = None,
        subreddits: list[str] | None = None,
        subreddit_sample: int | None = None,
        rng: random.Random | None = None,
    ):
        self.round_repo = round_repo
        self.content_source = content_source
        self.duration_seconds = (
            duration_seconds if duration_seconds is not None else ROUND_DURATION_SECONDS
        )
        self.safety_margin_seconds = (
            safety_margin_seconds
            if safety_margin_seconds is not None
            else ROUND_SAFETY_MARGIN_SECONDS
        )
        self.recent_lookback = (
            recent_lookback if recent_lookback is not None else RECENT_ROUND_LOOKBACK
        )
        self.subreddits = subreddits or CLASSIC_SUBREDDITS
        self.subreddit_sample = (
            subreddit_sample if subreddit_sample is not None else CLASSIC_SUBREDDIT_SAMPLE
        )
        self.rng = rng or random.Random()

    def check_and_create_round(self, now: int | None = None) -> Result[dict]:
        """
        Report whether a new classic round should be opened.

        Idempotent and read-only: safe at any call cadence. Creation itself
        re-checks inside a write lock.
        """
        now = now if now is not None else int(time.time())
        if self.round_repo.has_active_round():
            return Result.ok(
                {
                    "needed": False,
                    "reason": REASON_ACTIVE_ROUND_EXISTS,
                    "message": "Active round already exists",
                }
            )

        latest = self.round_repo.get_latest_created_at()
        threshold = self.duration_seconds - self.safety_margin_seconds
        if latest is None or now - latest >= threshold:
            return Result.ok(
                {
                    "needed": True,
                    "reason": REASON_NEW_ROUND_NEEDED,
                    "message": "New round needed",
                }
            )
        return Result.ok(
            {
                "needed": False,
                "reason": REASON_RECENT_ROUND_EXISTS,
                "message": "Recent round exists",
                "next_round_at": latest + threshold,
            }
        )

    def create_round(
        self, post_a: PostSnapshot, post_b: PostSnapshot, now: int | None = None
    ) -> Result[dict]:
        if post_a.post_id == post_b.post_id:
            return Result.fail(
                "A round needs two different posts", code=error_codes.VALIDATION_ERROR
            )
        now = now if now is not None else int(time.time())
        try:
            round_id = self.round_repo.create_round_atomic(
                post_a, post_b, self.duration_seconds, now
            )
        except GameritError as exc:
            logger.info(f"Round creation skipped: {exc.message}")
            return Result.from_error(exc)

        logger.info(
            f"Created round {round_id}: {post_a.post_id} (r/{post_a.subreddit}) vs "
            f"{post_b.post_id} (r/{post_b.subreddit})"
        )
        return Result.ok({"round": self.round_repo.get_round(round_id).to_dict()})

    def gather_candidates(self) -> list[PostSnapshot]:
        """Collect posts from a random sample of the configured subreddits."""
        if self.content_source is None:
            return []
        sample_size = min(self.subreddit_sample, len(self.subreddits))
        candidates: list[PostSnapshot] = []
        for subreddit in self.rng.sample(self.subreddits, sample_size):
            for sort, time_filter in CANDIDATE_LISTINGS:
                try:
                    candidates.extend(
                        self.content_source.fetch_listing(subreddit, sort, time_filter)
                    )
                except UpstreamUnavailableError as exc:
                    logger.warning(f"Skipping r/{subreddit}/{sort}: {exc}")
        return candidates

    def create_auto_round(self, now: int | None = None) -> Result[dict]:
        """Open a round from live Reddit content if one is due."""
        now = now if now is not None else int(time.time())
        check = self.check_and_create_round(now)
        if not check.value["needed"]:
            return Result.ok({"created": False, **check.value})

        used = self.round_repo.get_recent_post_ids(self.recent_lookback)
        pair = select_post_pair(self.gather_candidates(), used)
        if pair is None:
            logger.warning("No eligible post pair found for a new round")
            return Result.fail(
                "Not enough eligible posts to open a round",
                code=error_codes.NO_ELIGIBLE_POSTS,
            )

        result = self.create_round(pair[0], pair[1], now)
        if not result.success:
            return result
        return Result.ok({"created": True, **result.value})

    def get_active_rounds(self) -> list[dict]:
        rounds = []
        for game_round in self.round_repo.get_active_rounds():
            data = game_round.to_dict()
            data["pot"] = self.round_repo.get_round_pot(game_round.round_id)
            rounds.append(data)
        return rounds

    def get_round(self, round_id: int) -> Result[dict]:
        game_round = self.round_repo.get_round(round_id)
        if game_round is None:
            return Result.fail("Round not found", code=error_codes.ROUND_NOT_FOUND)
        data = game_round.to_dict()
        data["pot"] = self.round_repo.get_round_pot(round_id)
        return Result.ok({"round": data})

    def get_previous_rounds(self, limit: int = 10) -> list[dict]:
        rounds = []
        for game_round in self.round_repo.get_previous_rounds(limit):
            data = game_round.to_dict()
            data["pot"] = self.round_repo.get_round_pot(game_round.round_id)
            rounds.append(data)
        return rounds
