"""
Pytest fixtures for tests.

Performance optimization: uses a session-scoped schema template so migrations
run once per session. Each test gets a file copy of the template instead of
re-initializing the schema.

Shared constants and the FakeContentSource live here; import them with
`from tests.conftest import ...`.
"""

import random
import shutil

import pytest

from database import Database
from domain.models.round import PostSnapshot
from repositories.hot_potato_repository import HotPotatoRepository
from repositories.meme_stock_repository import MemeStockRepository
from repositories.player_repository import PlayerRepository
from repositories.portfolio_repository import PortfolioRepository
from repositories.round_repository import RoundRepository
from repositories.wager_repository import WagerRepository
from services.errors import UpstreamUnavailableError
from services.hot_potato_service import HotPotatoService
from services.interfaces import IContentSource
from services.market_service import MarketService
from services.player_service import PlayerService
from services.round_service import RoundService
from services.settlement_service import SettlementService
from services.wager_service import WagerService


# =============================================================================
# CENTRALIZED CONSTANTS
# =============================================================================

T0 = 1_700_000_000
"""Fixed 'now' used as the creation time of rounds in tests."""

DAY = 86400
HOUR = 3600


def make_post(post_id: str, score: int = 100, subreddit: str = "pics", **kwargs) -> PostSnapshot:
    """Build a post snapshot with sensible defaults for round tests."""
    defaults = {
        "title": f"A perfectly ordinary post titled {post_id}",
        "author": f"author_{post_id}",
        "num_comments": 10,
        "upvote_ratio": 0.95,
    }
    defaults.update(kwargs)
    return PostSnapshot(post_id=post_id, score=score, subreddit=subreddit, **defaults)


def shift_balance(player_repository, player_id: int, delta: int, now: int = T0) -> bool:
    """Apply a funds-guarded balance change outside any game operation."""
    with player_repository.atomic_transaction() as conn:
        return player_repository._apply_balance_delta(
            conn.cursor(), player_id, delta, now, require_funds=True
        )


class FakeContentSource(IContentSource):
    """
    In-memory stand-in for Reddit.

    scores: post_id -> current score (a post exists iff it has a score)
    unavailable: post ids / subreddits whose lookup raises UpstreamUnavailableError
    listings: subreddit -> posts returned by fetch_listing
    """

    def __init__(self):
        self.scores: dict[str, int] = {}
        self.unavailable: set[str] = set()
        self.listings: dict[str, list[PostSnapshot]] = {}
        self.fetched: list[str] = []

    def fetch_post(self, post_id):
        self.fetched.append(post_id)
        if post_id in self.unavailable:
            raise UpstreamUnavailableError(f"{post_id} unreachable")
        if post_id not in self.scores:
            return None
        return make_post(post_id, score=self.scores[post_id])

    def fetch_score(self, post_id):
        post = self.fetch_post(post_id)
        if post is None:
            raise UpstreamUnavailableError(f"{post_id} gone")
        return post.score

    def fetch_exists(self, post_id):
        return self.fetch_post(post_id) is not None

    def fetch_listing(self, subreddit, sort="hot", time_filter=None, limit=50):
        if subreddit in self.unavailable:
            raise UpstreamUnavailableError(f"r/{subreddit} unreachable")
        return list(self.listings.get(subreddit, []))[:limit]


@pytest.fixture(scope="session")
def _schema_template_path(tmp_path_factory):
    """
    Create a schema template database once per test session.

    All migrations run ONCE here. Tests copy from this template.
    """
    template_dir = tmp_path_factory.mktemp("schema_template")
    template_path = str(template_dir / "template.db")
    Database(template_path)
    yield template_path


@pytest.fixture
def repo_db_path(_schema_template_path, tmp_path):
    """
    Create a temporary database with initialized schema.

    Fast: file copy instead of schema initialization.
    """
    test_db_path = str(tmp_path / "test.db")
    shutil.copy2(_schema_template_path, test_db_path)
    yield test_db_path


@pytest.fixture
def content_source():
    return FakeContentSource()


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def player_repository(repo_db_path):
    return PlayerRepository(repo_db_path)


@pytest.fixture
def round_repository(repo_db_path):
    return RoundRepository(repo_db_path)


@pytest.fixture
def wager_repository(repo_db_path):
    return WagerRepository(repo_db_path)


@pytest.fixture
def hot_potato_repository(repo_db_path):
    return HotPotatoRepository(repo_db_path)


@pytest.fixture
def meme_stock_repository(repo_db_path):
    return MemeStockRepository(repo_db_path)


@pytest.fixture
def portfolio_repository(repo_db_path):
    return PortfolioRepository(repo_db_path)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def player_service(player_repository):
    return PlayerService(
        player_repository, starting_chips=1000, welfare_chips=50, welfare_cooldown_seconds=DAY
    )


@pytest.fixture
def round_service(round_repository, content_source):
    return RoundService(
        round_repository,
        content_source=content_source,
        duration_seconds=DAY,
        safety_margin_seconds=HOUR,
        recent_lookback=50,
        subreddits=["pics", "funny", "science"],
        subreddit_sample=3,
        rng=random.Random(7),
    )


@pytest.fixture
def wager_service(wager_repository, player_repository):
    return WagerService(wager_repository, player_repository, min_wager=10)


@pytest.fixture
def settlement_service(round_repository, wager_repository, content_source):
    return SettlementService(
        round_repository,
        wager_repository,
        content_source,
        payout_multiplier=2,
        rng=random.Random(42),
    )


@pytest.fixture
def hot_potato_service(hot_potato_repository, player_repository, content_source):
    return HotPotatoService(
        hot_potato_repository,
        player_repository,
        content_source=content_source,
        duration_seconds=48 * HOUR,
        max_hours=48,
        max_active=5,
        target_active=3,
        recent_lookback=20,
        min_wager=10,
        subreddits=["unpopularopinion"],
        rng=random.Random(3),
    )


@pytest.fixture
def market_service(meme_stock_repository, portfolio_repository, player_repository):
    return MarketService(
        meme_stock_repository,
        portfolio_repository,
        player_repository,
        history_window_seconds=7 * DAY,
    )


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def players(player_repository):
    """Two players, alice and bob, with the default 1000 chips."""
    alice, _ = player_repository.get_or_create("t2_alice", "alice", None, 1000, T0 - DAY)
    bob, _ = player_repository.get_or_create("t2_bob", "bob", None, 1000, T0 - DAY)
    return {"alice": alice, "bob": bob}


@pytest.fixture
def active_round(round_repository, content_source):
    """An active classic round opened at T0 between post a1 and b1."""
    round_id = round_repository.create_round_atomic(
        make_post("a1", score=100, subreddit="pics"),
        make_post("b1", score=90, subreddit="funny"),
        DAY,
        T0,
    )
    content_source.scores.update({"a1": 100, "b1": 90})
    return round_id
