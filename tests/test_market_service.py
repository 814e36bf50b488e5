"""
Tests for the meme stock market: trades, positions and the price feed.
"""

import sqlite3

import pytest

from services import error_codes
from tests.conftest import DAY, T0


@pytest.fixture
def doge(meme_stock_repository):
    return meme_stock_repository.get_by_keyword("doge").stock_id


class TestBuyAndSell:
    def test_round_trip_with_profit(self, market_service, portfolio_repository, players, doge):
        market_service.record_price(doge, 50, now=T0)

        bought = market_service.buy("t2_alice", doge, 220, now=T0 + 1).value["transaction"]
        assert bought["shares_bought"] == 4
        assert bought["total_cost"] == 200
        assert bought["average_buy_price"] == 50
        assert bought["remaining_chips"] == 800

        market_service.record_price(doge, 70, now=T0 + 2)
        sold = market_service.sell("t2_alice", doge, 4, now=T0 + 3).value["transaction"]
        assert sold["total_payout"] == 280
        assert sold["profit_loss"] == 80
        assert sold["remaining_shares"] == 0
        assert sold["new_chip_balance"] == 1080
        assert portfolio_repository.get_position(players["alice"].player_id, doge) is None

    def test_weighted_average_is_order_independent(self, market_service, portfolio_repository, players, doge):
        def buy_at(reddit_id, price, chips, now):
            market_service.record_price(doge, price, now=now)
            assert market_service.buy(reddit_id, doge, chips, now=now).success

        buy_at("t2_alice", 10, 30, T0)
        buy_at("t2_alice", 40, 40, T0 + 1)
        buy_at("t2_bob", 40, 40, T0 + 2)
        buy_at("t2_bob", 10, 30, T0 + 3)

        alice = portfolio_repository.get_position(players["alice"].player_id, doge)
        bob = portfolio_repository.get_position(players["bob"].player_id, doge)
        assert alice.shares_owned == bob.shares_owned == 4
        assert alice.average_buy_price == pytest.approx(17.5)
        assert bob.average_buy_price == pytest.approx(17.5)

    def test_partial_sell_keeps_average(self, market_service, portfolio_repository, players, doge):
        market_service.record_price(doge, 100, now=T0)
        market_service.buy("t2_alice", doge, 500, now=T0)
        market_service.record_price(doge, 80, now=T0 + 1)

        sold = market_service.sell("t2_alice", doge, 2, now=T0 + 2).value["transaction"]
        assert sold["profit_loss"] == -40
        position = portfolio_repository.get_position(players["alice"].player_id, doge)
        assert position.shares_owned == 3
        assert position.average_buy_price == 100

    def test_cannot_afford_one_share(self, market_service, player_repository, players, doge):
        result = market_service.buy("t2_alice", doge, 749, now=T0)
        assert result.error_code == error_codes.INSUFFICIENT_CHIPS_FOR_ONE_SHARE
        assert player_repository.get_balance(players["alice"].player_id) == 1000

    def test_buy_beyond_balance(self, market_service, player_repository, players, doge):
        result = market_service.buy("t2_alice", doge, 1500, now=T0)
        assert result.error_code == error_codes.INSUFFICIENT_FUNDS
        assert player_repository.get_balance(players["alice"].player_id) == 1000

    def test_sell_more_than_owned(self, market_service, players, doge):
        market_service.buy("t2_alice", doge, 750, now=T0)
        result = market_service.sell("t2_alice", doge, 2, now=T0 + 1)
        assert result.error_code == error_codes.INSUFFICIENT_SHARES

    def test_sell_without_position(self, market_service, players, doge):
        result = market_service.sell("t2_bob", doge, 1, now=T0)
        assert result.error_code == error_codes.POSITION_NOT_FOUND
        assert result.error == "No shares found for this stock"

    def test_inactive_stock_blocks_buys_not_sells(self, market_service, players, doge):
        market_service.buy("t2_alice", doge, 750, now=T0)
        assert market_service.deactivate_stock(doge, now=T0 + 1).success

        assert market_service.buy("t2_alice", doge, 200, now=T0 + 2).error_code == error_codes.STOCK_INACTIVE
        assert market_service.sell("t2_alice", doge, 1, now=T0 + 3).success

    def test_unknown_stock(self, market_service, players):
        assert market_service.buy("t2_alice", 999, 100, now=T0).error_code == error_codes.STOCK_NOT_FOUND

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amounts(self, market_service, players, doge, amount):
        assert market_service.buy("t2_alice", doge, amount).error_code == error_codes.VALIDATION_ERROR
        assert market_service.sell("t2_alice", doge, amount).error_code == error_codes.VALIDATION_ERROR


class TestAtomicity:
    def test_failed_position_write_rolls_back_debit(
        self, market_service, portfolio_repository, player_repository, players, doge, monkeypatch
    ):
        def boom(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(portfolio_repository, "_write_position", boom)

        with pytest.raises(sqlite3.OperationalError):
            market_service.buy("t2_alice", doge, 750, now=T0)

        alice_id = players["alice"].player_id
        assert player_repository.get_balance(alice_id) == 1000
        assert portfolio_repository.get_trades(alice_id) == []
        assert portfolio_repository.get_position(alice_id, doge) is None

    @pytest.mark.parametrize("failing_step", ["_reduce_position", "_log_trade"])
    def test_failed_sell_write_rolls_back_payout(
        self, market_service, portfolio_repository, player_repository, players, doge, monkeypatch, failing_step
    ):
        market_service.record_price(doge, 100, now=T0)
        assert market_service.buy("t2_alice", doge, 300, now=T0).success
        market_service.record_price(doge, 150, now=T0 + 1)

        def boom(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(portfolio_repository, failing_step, boom)

        with pytest.raises(sqlite3.OperationalError):
            market_service.sell("t2_alice", doge, 2, now=T0 + 2)

        alice_id = players["alice"].player_id
        assert player_repository.get_balance(alice_id) == 700
        assert portfolio_repository.get_position(alice_id, doge).shares_owned == 3
        trades = portfolio_repository.get_trades(alice_id)
        assert len(trades) == 1
        assert trades[0]["trade_type"] == "buy"


class TestPortfolioReads:
    def test_portfolio_summary(self, market_service, players, doge):
        market_service.record_price(doge, 100, now=T0)
        market_service.buy("t2_alice", doge, 300, now=T0)
        market_service.record_price(doge, 120, now=T0 + 1)

        portfolio = market_service.get_portfolio("t2_alice").value
        assert portfolio["portfolio_value"] == 360
        assert portfolio["unrealized_profit"] == 60
        assert portfolio["chips"] == 700
        assert portfolio["positions"][0]["keyword"] == "doge"

    def test_trades_newest_first(self, market_service, players, doge):
        market_service.record_price(doge, 100, now=T0)
        market_service.buy("t2_alice", doge, 200, now=T0 + 1)
        market_service.sell("t2_alice", doge, 1, now=T0 + 2)

        trades = market_service.get_trades("t2_alice").value
        assert [t["trade_type"] for t in trades] == ["sell", "buy"]
        assert trades[1]["total_amount"] == 200

    def test_leaderboard_by_holdings(self, market_service, players, doge):
        market_service.record_price(doge, 100, now=T0)
        market_service.buy("t2_alice", doge, 200, now=T0)
        market_service.buy("t2_bob", doge, 500, now=T0)

        board = market_service.get_leaderboard()
        assert [row["reddit_username"] for row in board] == ["bob", "alice"]
        assert board[0]["portfolio_value"] == 500

    def test_unknown_player_portfolio(self, market_service):
        assert market_service.get_portfolio("t2_ghost").error_code == error_codes.PLAYER_NOT_FOUND


class TestPriceFeed:
    def test_create_stock_normalizes_keyword(self, market_service):
        result = market_service.create_stock("$HODL", 300, now=T0)
        assert result.value["stock"]["keyword"] == "hodl"
        assert market_service.create_stock("hodl", 10, now=T0).error_code == error_codes.STATE_ERROR

    def test_history_is_pruned_to_window(self, market_service):
        stock_id = market_service.create_stock("rocket", 100, now=T0).value["stock"]["stock_id"]
        market_service.record_price(stock_id, 110, now=T0 + 3 * DAY)

        stock = market_service.record_price(stock_id, 120, now=T0 + 8 * DAY).value["stock"]
        assert [p["timestamp"] for p in stock["history"]] == [T0 + 3 * DAY, T0 + 8 * DAY]
        assert stock["current_value"] == 120

    def test_deactivated_stock_hidden_from_active_listing(self, market_service, doge):
        market_service.deactivate_stock(doge, now=T0)
        assert "doge" not in {s["keyword"] for s in market_service.list_stocks()}
        assert "doge" in {s["keyword"] for s in market_service.list_stocks(active_only=False)}

    def test_price_must_be_positive(self, market_service, doge):
        assert market_service.record_price(doge, 0).error_code == error_codes.VALIDATION_ERROR
