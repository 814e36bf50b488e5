"""
Tests for classic round settlement.

Covers the outcome rules, the exactly-once payout guarantee under repeated
and concurrent settlement passes, and resumption after a partial payout.
"""

import random
import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import requests

from domain.models.round import SIDE_A, SIDE_B
from reddit_integration import RedditClient
from repositories.player_repository import PlayerRepository
from repositories.round_repository import RoundRepository
from repositories.wager_repository import WagerRepository
from services.settlement_service import SettlementService, determine_winner
from tests.conftest import DAY, T0


def _balance(player_repository, player):
    return player_repository.get_balance(player.player_id)


class TestDetermineWinner:
    def test_higher_score_wins(self):
        rng = MagicMock()
        assert determine_winner(150, 120, rng) == SIDE_A
        assert determine_winner(3, 7, rng) == SIDE_B
        rng.choice.assert_not_called()

    def test_tie_is_a_coin_flip(self):
        rng = MagicMock()
        rng.choice.return_value = SIDE_B
        assert determine_winner(10, 10, rng) == SIDE_B
        rng.choice.assert_called_once_with([SIDE_A, SIDE_B])

    def test_tie_flip_is_unweighted(self):
        rng = random.Random(1234)
        outcomes = [determine_winner(5, 5, rng) for _ in range(2000)]
        assert 850 < outcomes.count(SIDE_A) < 1150


class TestSettleDueRounds:
    def test_worked_example(
        self,
        settlement_service,
        wager_service,
        round_repository,
        player_repository,
        content_source,
        players,
        active_round,
    ):
        wager_service.place_wager(active_round, "t2_alice", "A", 100, now=T0 + 60)
        wager_service.place_wager(active_round, "t2_bob", "B", 200, now=T0 + 60)
        content_source.scores.update({"a1": 150, "b1": 120})

        summary = settlement_service.settle_due_rounds(now=T0 + DAY)

        assert summary["rounds_processed"] == 1
        assert summary["total_paid"] == 200
        game_round = round_repository.get_round(active_round)
        assert game_round.status == "finished"
        assert game_round.winner == "A"
        assert (game_round.post_a_final_score, game_round.post_b_final_score) == (150, 120)
        assert _balance(player_repository, players["alice"]) == 900 + 200
        assert _balance(player_repository, players["bob"]) == 800

    def test_round_before_deadline_is_untouched(
        self, settlement_service, round_repository, content_source, active_round
    ):
        summary = settlement_service.settle_due_rounds(now=T0 + DAY - 1)
        assert summary["rounds_processed"] == 0
        assert round_repository.get_round(active_round).status == "active"
        assert content_source.fetched == []

    def test_upstream_failure_falls_back_to_initial_score(
        self, settlement_service, round_repository, content_source, active_round
    ):
        content_source.unavailable.add("a1")
        content_source.scores["b1"] = 95

        summary = settlement_service.settle_due_rounds(now=T0 + DAY)

        game_round = round_repository.get_round(active_round)
        assert game_round.post_a_final_score == 100
        assert game_round.post_b_final_score == 95
        assert game_round.winner == "A"
        assert summary["rounds"][0]["fallbacks"] == ["A"]

    def test_garbled_token_response_falls_back_to_initial_scores(
        self, round_repository, wager_repository, active_round
    ):
        session = MagicMock(spec=requests.Session)
        token_response = MagicMock(status_code=200)
        token_response.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        session.post.return_value = token_response
        reddit = RedditClient(
            client_id="id", client_secret="secret", user_agent="test/1.0", timeout=2, session=session
        )
        service = SettlementService(
            round_repository, wager_repository, reddit, payout_multiplier=2, rng=random.Random(42)
        )

        summary = service.settle_due_rounds(now=T0 + DAY)

        game_round = round_repository.get_round(active_round)
        assert game_round.status == "finished"
        assert game_round.winner == SIDE_A
        assert summary["rounds"][0]["fallbacks"] == ["A", "B"]

    def test_deleted_post_uses_initial_score(
        self, settlement_service, round_repository, content_source, active_round
    ):
        del content_source.scores["b1"]
        content_source.scores["a1"] = 10

        settlement_service.settle_due_rounds(now=T0 + DAY)

        game_round = round_repository.get_round(active_round)
        assert game_round.post_b_final_score == 90
        assert game_round.winner == "B"

    def test_round_without_wagers_finishes(self, settlement_service, round_repository, active_round):
        summary = settlement_service.settle_due_rounds(now=T0 + DAY)
        assert summary["rounds"][0]["wagers_paid"] == 0
        assert round_repository.get_round(active_round).status == "finished"

    def test_tie_uses_injected_rng(
        self, round_repository, wager_repository, content_source, active_round
    ):
        rng = MagicMock()
        rng.choice.return_value = SIDE_B
        service = SettlementService(round_repository, wager_repository, content_source, 2, rng=rng)
        content_source.scores.update({"a1": 77, "b1": 77})

        service.settle_due_rounds(now=T0 + DAY)
        assert round_repository.get_round(active_round).winner == SIDE_B


class TestExactlyOnce:
    def test_second_pass_pays_nothing(
        self, settlement_service, wager_service, player_repository, players, active_round
    ):
        wager_service.place_wager(active_round, "t2_alice", "A", 100, now=T0 + 60)

        first = settlement_service.settle_due_rounds(now=T0 + DAY)
        second = settlement_service.settle_due_rounds(now=T0 + DAY + 60)

        assert first["total_paid"] == 200
        assert second["rounds_processed"] == 0
        assert second["total_paid"] == 0
        assert _balance(player_repository, players["alice"]) == 1100

    def test_payout_conservation(
        self, settlement_service, player_repository, wager_service, active_round
    ):
        stakes = {}
        for i in range(6):
            reddit_id = f"t2_p{i}"
            player, _ = player_repository.get_or_create(reddit_id, f"p{i}", None, 1000, T0)
            side = "A" if i % 2 == 0 else "B"
            amount = 50 * (i + 1)
            wager_service.place_wager(active_round, reddit_id, side, amount, now=T0 + 60)
            stakes[player.player_id] = (side, amount)

        summary = settlement_service.settle_due_rounds(now=T0 + DAY)

        winning_stakes = sum(amount for side, amount in stakes.values() if side == "A")
        assert summary["total_paid"] == 2 * winning_stakes
        for player_id, (side, amount) in stakes.items():
            expected = 1000 - amount + (2 * amount if side == "A" else 0)
            assert player_repository.get_balance(player_id) == expected

    def test_concurrent_passes_settle_once(self, repo_db_path, content_source, players, wager_service, active_round):
        wager_service.place_wager(active_round, "t2_alice", "A", 100, now=T0 + 60)
        wager_service.place_wager(active_round, "t2_bob", "A", 300, now=T0 + 60)
        content_source.scores.update({"a1": 500, "b1": 1})

        workers = 8
        barrier = threading.Barrier(workers)
        round_repo = RoundRepository(repo_db_path)
        wager_repo = WagerRepository(repo_db_path)

        def settle(i):
            service = SettlementService(
                round_repo, wager_repo, content_source, 2, rng=random.Random(i)
            )
            barrier.wait()
            return service.settle_due_rounds(now=T0 + DAY)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            summaries = list(pool.map(settle, range(workers)))

        player_repo = PlayerRepository(repo_db_path)
        assert sum(s["total_paid"] for s in summaries) == 800
        assert player_repo.get_balance(players["alice"].player_id) == 1100
        assert player_repo.get_balance(players["bob"].player_id) == 1300
        assert round_repo.get_round(active_round).status == "finished"
        closers = [s for s in summaries for r in s["rounds"] if not r["resumed"]]
        assert len(closers) == 1


class TestPartialPayout:
    def test_failed_payout_is_resumed_without_double_pay(
        self,
        settlement_service,
        wager_service,
        wager_repository,
        round_repository,
        player_repository,
        players,
        active_round,
        monkeypatch,
    ):
        wager_service.place_wager(active_round, "t2_alice", "A", 100, now=T0 + 60)
        wager_service.place_wager(active_round, "t2_bob", "A", 200, now=T0 + 60)

        original = wager_repository.pay_wager_atomic
        calls = {"n": 0}

        def flaky(wager_id, player_id, payout, now):
            calls["n"] += 1
            if calls["n"] == 1:
                raise sqlite3.OperationalError("database is locked")
            return original(wager_id, player_id, payout, now)

        monkeypatch.setattr(wager_repository, "pay_wager_atomic", flaky)

        first = settlement_service.settle_due_rounds(now=T0 + DAY)
        assert first["rounds"][0]["failed_payouts"] == 1
        assert round_repository.get_round(active_round).status == "pending_payout"
        assert _balance(player_repository, players["alice"]) == 900
        assert _balance(player_repository, players["bob"]) == 800 + 400

        second = settlement_service.settle_due_rounds(now=T0 + DAY + 300)
        assert second["rounds"][0]["resumed"] is True
        assert second["total_paid"] == 200
        assert round_repository.get_round(active_round).status == "finished"
        assert _balance(player_repository, players["alice"]) == 1100
        assert _balance(player_repository, players["bob"]) == 1200

    def test_resume_reports_round_finished_elsewhere_as_not_finished(
        self, settlement_service, round_repository, active_round, monkeypatch
    ):
        assert round_repository.mark_pending_payout(active_round, 100, 90, SIDE_A, T0 + DAY)
        stale = round_repository.get_pending_payout_rounds()
        assert round_repository.mark_finished(active_round) is True
        monkeypatch.setattr(round_repository, "get_pending_payout_rounds", lambda: stale)

        summary = settlement_service.settle_due_rounds(now=T0 + DAY + 300)

        assert summary["rounds"][0]["resumed"] is True
        assert summary["rounds"][0]["finished"] is False
        assert round_repository.get_round(active_round).status == "finished"

    def test_pay_wager_is_idempotent(self, wager_repository, wager_service, player_repository, players, active_round):
        wager = wager_service.place_wager(active_round, "t2_alice", "A", 100, now=T0 + 60).value["wager"]

        assert wager_repository.pay_wager_atomic(wager["wager_id"], wager["player_id"], 200, T0 + DAY) is True
        assert wager_repository.pay_wager_atomic(wager["wager_id"], wager["player_id"], 200, T0 + DAY) is False
        assert _balance(player_repository, players["alice"]) == 1100
