"""
Tests for hot potato rounds: creation limits, predictions and resolution.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from repositories.hot_potato_repository import HotPotatoRepository
from repositories.player_repository import PlayerRepository
from services import error_codes
from services.hot_potato_service import (
    HotPotatoService,
    controversy_score,
    rank_controversial_posts,
)
from tests.conftest import HOUR, T0, make_post


def spicy_post(post_id, **kwargs):
    """A young, divisive post that passes the controversy filter."""
    defaults = {
        "score": 100,
        "subreddit": "unpopularopinion",
        "upvote_ratio": 0.55,
        "num_comments": 300,
        "created_utc": T0 - HOUR,
    }
    defaults.update(kwargs)
    return make_post(post_id, **defaults)


@pytest.fixture
def hp_round(hot_potato_service, content_source):
    """An active hot potato round on post hp1 opened at T0."""
    result = hot_potato_service.create_hot_potato_round(spicy_post("hp1"), now=T0)
    content_source.scores["hp1"] = 100
    return result.value["round"]["round_id"]


class TestControversyRanking:
    def test_controversy_score(self):
        assert controversy_score(spicy_post("x")) == 75

    def test_filters_and_orders(self):
        posts = [
            spicy_post("mild", upvote_ratio=0.75, num_comments=60),
            spicy_post("hot", upvote_ratio=0.51, num_comments=900),
            spicy_post("popular", upvote_ratio=0.95),
            spicy_post("quiet", num_comments=15),
            spicy_post("stale", created_utc=T0 - 13 * HOUR),
            spicy_post("gone", title="[removed] by moderators"),
            spicy_post("used"),
        ]
        ranked = rank_controversial_posts(posts, T0, {"used"})
        assert [p.post_id for p in ranked] == ["hot", "mild"]


class TestCreateHotPotatoRound:
    def test_create_records_snapshot(self, hot_potato_service):
        result = hot_potato_service.create_hot_potato_round(spicy_post("hp1"), now=T0)
        assert result.success
        data = result.value["round"]
        assert data["status"] == "active"
        assert data["expires_at"] == T0 + 48 * HOUR
        assert data["initial_score"] == 100
        assert data["controversy_score"] == 75

    def test_active_cap(self, hot_potato_service):
        for i in range(5):
            assert hot_potato_service.create_hot_potato_round(spicy_post(f"p{i}"), now=T0).success
        sixth = hot_potato_service.create_hot_potato_round(spicy_post("p5"), now=T0)
        assert sixth.error_code == error_codes.MAX_ACTIVE_ROUNDS

    def test_recent_post_not_reused(self, hot_potato_service, hp_round):
        again = hot_potato_service.create_hot_potato_round(spicy_post("hp1"), now=T0 + 10)
        assert again.error_code == error_codes.POST_RECENTLY_USED

    def test_auto_creation_picks_most_controversial(self, hot_potato_service, content_source):
        content_source.listings["unpopularopinion"] = [
            spicy_post("mild", upvote_ratio=0.75, num_comments=60),
            spicy_post("hot", upvote_ratio=0.51, num_comments=900),
        ]
        result = hot_potato_service.create_auto_hot_potato_round(now=T0)
        assert result.value["round"]["post_id"] == "hot"

    def test_auto_creation_without_candidates(self, hot_potato_service):
        result = hot_potato_service.create_auto_hot_potato_round(now=T0)
        assert result.error_code == error_codes.NO_ELIGIBLE_POSTS

    def test_top_up_fills_to_target(self, hot_potato_service, hot_potato_repository, content_source):
        content_source.listings["unpopularopinion"] = [
            spicy_post(f"p{i}", num_comments=300 + i) for i in range(6)
        ]
        results = hot_potato_service.top_up_rounds(now=T0)
        assert all(r.success for r in results)
        assert hot_potato_repository.count_active() == 3

        assert hot_potato_service.top_up_rounds(now=T0 + 60) == []


class TestHotPotatoWagers:
    @pytest.mark.parametrize(
        "hours,amount,code",
        [
            (0, 50, error_codes.INVALID_PREDICTION),
            (49, 50, error_codes.INVALID_PREDICTION),
            (12, 5, error_codes.WAGER_TOO_SMALL),
            (12, 5000, error_codes.INSUFFICIENT_FUNDS),
        ],
    )
    def test_rejections(self, hot_potato_service, player_repository, players, hp_round, hours, amount, code):
        result = hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", hours, amount, now=T0 + 60)
        assert result.error_code == code
        assert player_repository.get_balance(players["alice"].player_id) == 1000

    def test_one_prediction_per_player(self, hot_potato_service, players, hp_round):
        assert hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", 6, 50, now=T0 + 60).success
        second = hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", 7, 50, now=T0 + 61)
        assert second.error_code == error_codes.DUPLICATE_WAGER

    def test_resolved_round_refuses_predictions(self, hot_potato_service, content_source, players, hp_round):
        del content_source.scores["hp1"]
        hot_potato_service.resolve_hot_potato_rounds(now=T0 + 5 * HOUR)
        result = hot_potato_service.place_hot_potato_wager(hp_round, "t2_bob", 6, 50, now=T0 + 6 * HOUR)
        assert result.error_code == error_codes.ROUND_NOT_ACTIVE

    def test_expired_round_refuses_predictions_before_resolution(
        self, hot_potato_service, player_repository, players, hp_round
    ):
        result = hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", 48, 100, now=T0 + 60 * HOUR)

        assert not result.success
        assert result.error_code == error_codes.ROUND_NOT_ACTIVE
        assert player_repository.get_balance(players["alice"].player_id) == 1000
        assert hot_potato_service.hot_potato_repo.get_wagers_for_round(hp_round) == []

    def test_wager_at_expiry_instant_is_refused(self, hot_potato_service, hp_round, players):
        result = hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", 47, 100, now=T0 + 48 * HOUR)
        assert result.error_code == error_codes.ROUND_NOT_ACTIVE

    def test_parallel_wagers_cannot_overdraw(self, repo_db_path, hot_potato_service, players):
        round_ids = [
            hot_potato_service.create_hot_potato_round(spicy_post(f"c{i}"), now=T0).value["round"]["round_id"]
            for i in range(5)
        ]
        service = HotPotatoService(
            HotPotatoRepository(repo_db_path),
            PlayerRepository(repo_db_path),
            max_hours=48,
            min_wager=10,
        )
        barrier = threading.Barrier(len(round_ids))

        def stake(round_id):
            barrier.wait()
            return service.place_hot_potato_wager(round_id, "t2_alice", 10, 300, now=T0 + 60)

        with ThreadPoolExecutor(max_workers=len(round_ids)) as pool:
            results = list(pool.map(stake, round_ids))

        assert sum(1 for r in results if r.success) == 3
        assert all(r.error_code == error_codes.INSUFFICIENT_FUNDS for r in results if not r.success)
        assert PlayerRepository(repo_db_path).get_balance(players["alice"].player_id) == 100


class TestResolveHotPotatoRounds:
    def _predict(self, service, round_id, predictions):
        for reddit_id, hours, amount in predictions:
            assert service.place_hot_potato_wager(round_id, reddit_id, hours, amount, now=T0 + 60).success

    def test_deleted_post_pays_closest_prediction(
        self, hot_potato_service, hot_potato_repository, player_repository, content_source, players, hp_round
    ):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 5, 100), ("t2_bob", 20, 300)])
        del content_source.scores["hp1"]

        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 6 * HOUR)

        assert len(summary["resolved"]) == 1
        resolved = summary["resolved"][0]
        assert resolved["status"] == "deleted"
        assert resolved["target_hours"] == 6
        assert resolved["total_pot"] == 400
        assert resolved["winning_player_ids"] == [players["alice"].player_id]
        assert player_repository.get_balance(players["alice"].player_id) == 900 + 400
        assert player_repository.get_balance(players["bob"].player_id) == 700

        hp = hot_potato_repository.get_round(hp_round)
        assert hp.status == "deleted"
        assert hp.actual_deletion_time == T0 + 6 * HOUR

    def test_tied_predictions_split_with_integer_division(
        self, hot_potato_service, player_repository, content_source, players, hp_round
    ):
        carol, _ = player_repository.get_or_create("t2_carol", "carol", None, 1000, T0)
        self._predict(
            hot_potato_service,
            hp_round,
            [("t2_alice", 4, 100), ("t2_bob", 8, 100), ("t2_carol", 30, 101)],
        )
        del content_source.scores["hp1"]

        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 6 * HOUR)

        resolved = summary["resolved"][0]
        assert resolved["winner_count"] == 2
        assert resolved["payout_per_winner"] == 150
        assert player_repository.get_balance(players["alice"].player_id) == 1050
        assert player_repository.get_balance(players["bob"].player_id) == 1050
        assert player_repository.get_balance(carol.player_id) == 899

    def test_alive_post_before_expiry_refreshes_score(
        self, hot_potato_service, hot_potato_repository, content_source, hp_round
    ):
        content_source.scores["hp1"] = 240
        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 10 * HOUR)

        assert summary == {"resolved": [], "refreshed": 1}
        hp = hot_potato_repository.get_round(hp_round)
        assert hp.status == "active"
        assert hp.final_score == 240

    def test_survivor_pays_predictions_nearest_window(
        self, hot_potato_service, player_repository, players, hp_round
    ):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 47, 50), ("t2_bob", 12, 50)])

        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 48 * HOUR)

        resolved = summary["resolved"][0]
        assert resolved["status"] == "survived"
        assert resolved["target_hours"] == 48
        assert player_repository.get_balance(players["alice"].player_id) == 950 + 100
        assert player_repository.get_balance(players["bob"].player_id) == 950

    def test_unreachable_before_expiry_is_treated_as_deleted(
        self, hot_potato_service, hot_potato_repository, player_repository, content_source, players, hp_round
    ):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 10, 100), ("t2_bob", 40, 100)])
        content_source.unavailable.add("hp1")

        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 10 * HOUR)

        resolved = summary["resolved"][0]
        assert resolved["status"] == "deleted"
        assert resolved["target_hours"] == 10
        hp = hot_potato_repository.get_round(hp_round)
        assert hp.status == "deleted"
        assert hp.actual_deletion_time == T0 + 10 * HOUR
        assert player_repository.get_balance(players["alice"].player_id) == 1100
        assert player_repository.get_balance(players["bob"].player_id) == 900

    def test_unreachable_after_expiry_resolves_expired(
        self, hot_potato_service, hot_potato_repository, content_source, players, hp_round
    ):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 40, 50)])
        content_source.unavailable.add("hp1")

        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 49 * HOUR)
        assert summary["resolved"][0]["status"] == "expired"
        assert hot_potato_repository.get_round(hp_round).status == "expired"

    def test_late_deletion_caps_lifetime(self, hot_potato_service, content_source, players, hp_round):
        del content_source.scores["hp1"]
        summary = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 60 * HOUR)
        assert summary["resolved"][0]["target_hours"] == 48

    def test_resolution_pays_once(
        self, hot_potato_service, player_repository, content_source, players, hp_round
    ):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 3, 100)])
        del content_source.scores["hp1"]

        hot_potato_service.resolve_hot_potato_rounds(now=T0 + 3 * HOUR)
        second = hot_potato_service.resolve_hot_potato_rounds(now=T0 + 4 * HOUR)

        assert second["resolved"] == []
        assert player_repository.get_balance(players["alice"].player_id) == 1000

    def test_concurrent_resolvers_pay_once(self, repo_db_path, hot_potato_service, content_source, players, hp_round):
        self._predict(hot_potato_service, hp_round, [("t2_alice", 3, 100), ("t2_bob", 30, 100)])
        del content_source.scores["hp1"]
        repo = HotPotatoRepository(repo_db_path)
        player_repo = PlayerRepository(repo_db_path)
        barrier = threading.Barrier(6)

        def resolve(_):
            service = HotPotatoService(repo, player_repo, content_source=content_source, max_hours=48)
            barrier.wait()
            return service.resolve_hot_potato_rounds(now=T0 + 3 * HOUR)

        with ThreadPoolExecutor(max_workers=6) as pool:
            summaries = list(pool.map(resolve, range(6)))

        assert sum(len(s["resolved"]) for s in summaries) == 1
        assert player_repo.get_balance(players["alice"].player_id) == 900 + 200


class TestHotPotatoReads:
    def test_active_rounds_show_pot(self, hot_potato_service, players, hp_round):
        hot_potato_service.place_hot_potato_wager(hp_round, "t2_alice", 5, 70, now=T0 + 60)
        rounds = hot_potato_service.get_active_rounds()
        assert rounds[0]["total_pot"] == 70
        assert rounds[0]["wager_count"] == 1

    def test_unknown_round(self, hot_potato_service):
        assert hot_potato_service.get_round(404).error_code == error_codes.ROUND_NOT_FOUND
