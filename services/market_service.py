"""
Service for the meme stock market.

Players spend chips on whole shares at the current price and sell back at
whatever the price is then. Positions carry a weighted-average buy price so
profit and loss can be reported per sale and per portfolio.
"""

import logging
import time

from config import MARKET_HISTORY_WINDOW_SECONDS
from repositories.interfaces import (
    IMemeStockRepository,
    IPlayerRepository,
    IPortfolioRepository,
)
from services import error_codes
from services.errors import GameritError
from services.interfaces import IMarketService
from services.result import Result

logger = logging.getLogger("gamerit.services.market")


class MarketService(IMarketService):
    """Position ledger and price feed for meme stocks."""

    def __init__(
        self,
        stock_repo: IMemeStockRepository,
        portfolio_repo: IPortfolioRepository,
        player_repo: IPlayerRepository,
        history_window_seconds: int | None = None,
    ):
        self.stock_repo = stock_repo
        self.portfolio_repo = portfolio_repo
        self.player_repo = player_repo
        self.history_window_seconds = (
            history_window_seconds
            if history_window_seconds is not None
            else MARKET_HISTORY_WINDOW_SECONDS
        )

    def buy(
        self, reddit_id: str, stock_id: int, chip_amount: int, now: int | None = None
    ) -> Result[dict]:
        if chip_amount is None or chip_amount <= 0:
            return Result.fail("Chip amount must be positive", code=error_codes.VALIDATION_ERROR)
        now = now if now is not None else int(time.time())
        try:
            trade = self.portfolio_repo.buy_atomic(reddit_id, stock_id, chip_amount, now)
        except GameritError as exc:
            return Result.from_error(exc)
        logger.info(
            f"{reddit_id} bought {trade['shares_bought']} ${trade['stock_keyword']} "
            f"at {trade['price_per_share']}"
        )
        return Result.ok({"transaction": trade})

    def sell(
        self, reddit_id: str, stock_id: int, shares: int, now: int | None = None
    ) -> Result[dict]:
        if shares is None or shares <= 0:
            return Result.fail("Share count must be positive", code=error_codes.VALIDATION_ERROR)
        now = now if now is not None else int(time.time())
        try:
            trade = self.portfolio_repo.sell_atomic(reddit_id, stock_id, shares, now)
        except GameritError as exc:
            return Result.from_error(exc)
        logger.info(
            f"{reddit_id} sold {trade['shares_sold']} ${trade['stock_keyword']} "
            f"at {trade['price_per_share']} (P/L {trade['profit_loss']:.2f})"
        )
        return Result.ok({"transaction": trade})

    def get_portfolio(self, reddit_id: str) -> Result[dict]:
        player = self.player_repo.get_by_reddit_id(reddit_id)
        if player is None:
            return Result.fail("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        positions = self.portfolio_repo.get_positions(player.player_id)
        return Result.ok(
            {
                "positions": positions,
                "portfolio_value": sum(p["market_value"] for p in positions),
                "unrealized_profit": sum(p["unrealized_profit"] for p in positions),
                "chips": player.points,
            }
        )

    def get_trades(self, reddit_id: str, limit: int = 20) -> Result[list[dict]]:
        player = self.player_repo.get_by_reddit_id(reddit_id)
        if player is None:
            return Result.fail("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        return Result.ok(self.portfolio_repo.get_trades(player.player_id, limit))

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        return self.portfolio_repo.get_leaderboard(limit)

    def list_stocks(self, active_only: bool = True) -> list[dict]:
        return [stock.to_dict() for stock in self.stock_repo.list_stocks(active_only)]

    # --- Price feed ---

    def create_stock(self, keyword: str, initial_value: int, now: int | None = None) -> Result[dict]:
        keyword = (keyword or "").strip().lstrip("$").lower()
        if not keyword:
            return Result.fail("Keyword is required", code=error_codes.VALIDATION_ERROR)
        if initial_value <= 0:
            return Result.fail("Price must be positive", code=error_codes.VALIDATION_ERROR)
        now = now if now is not None else int(time.time())
        try:
            stock_id = self.stock_repo.create_stock(keyword, initial_value, now)
        except GameritError as exc:
            return Result.from_error(exc)
        return Result.ok({"stock": self.stock_repo.get_stock(stock_id).to_dict()})

    def record_price(self, stock_id: int, value: int, now: int | None = None) -> Result[dict]:
        """Publish a new price; history older than the rolling window is dropped."""
        if value <= 0:
            return Result.fail("Price must be positive", code=error_codes.VALIDATION_ERROR)
        now = now if now is not None else int(time.time())
        try:
            stock = self.stock_repo.record_price(stock_id, value, now, self.history_window_seconds)
        except GameritError as exc:
            return Result.from_error(exc)
        return Result.ok({"stock": stock.to_dict()})

    def deactivate_stock(self, stock_id: int, now: int | None = None) -> Result[dict]:
        """Stop new buys. Holders can still sell."""
        now = now if now is not None else int(time.time())
        if not self.stock_repo.set_active(stock_id, False, now):
            return Result.fail("Stock not found", code=error_codes.STOCK_NOT_FOUND)
        logger.info(f"Stock {stock_id} deactivated")
        return Result.ok({"stock_id": stock_id, "is_active": False})
