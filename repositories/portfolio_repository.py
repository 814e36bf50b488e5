"""
Repository for meme stock positions and trades.

Buys and sells move chips and shares in one transaction: the balance change,
the position write and the trade log row commit together or not at all.
"""

import logging

from domain.models.stock import Position
from repositories.base_repository import BaseRepository
from repositories.interfaces import IPortfolioRepository
from services import error_codes
from services.errors import InsufficientFundsError, NotFoundError, StateConflictError

logger = logging.getLogger("gamerit.repositories.portfolio")


class PortfolioRepository(BaseRepository, IPortfolioRepository):
    """Data access for portfolio_positions and meme_stock_trades."""

    @staticmethod
    def _load_player(cursor, reddit_id: str):
        cursor.execute(
            "SELECT player_id, points FROM players WHERE reddit_id = ?",
            (reddit_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise NotFoundError("Player not found", code=error_codes.PLAYER_NOT_FOUND)
        return row

    @staticmethod
    def _load_stock(cursor, stock_id: int):
        cursor.execute(
            "SELECT stock_id, keyword, current_value, is_active FROM meme_stocks WHERE stock_id = ?",
            (stock_id,),
        )
        row = cursor.fetchone()
        if not row:
            raise NotFoundError("Stock not found", code=error_codes.STOCK_NOT_FOUND)
        return row

    def _write_position(
        self, cursor, player_id: int, stock_id: int, shares: int, price: int, now: int
    ) -> tuple[int, float]:
        """
        Add shares to a position, recomputing the weighted-average cost.

        Returns:
            (total_shares, average_buy_price) after the write
        """
        cursor.execute(
            """
            SELECT shares_owned, average_buy_price FROM portfolio_positions
            WHERE player_id = ? AND stock_id = ?
            """,
            (player_id, stock_id),
        )
        existing = cursor.fetchone()
        if existing:
            old_shares = existing["shares_owned"]
            total_shares = old_shares + shares
            average = (old_shares * existing["average_buy_price"] + shares * price) / total_shares
            cursor.execute(
                """
                UPDATE portfolio_positions
                SET shares_owned = ?, average_buy_price = ?, updated_at = ?
                WHERE player_id = ? AND stock_id = ?
                """,
                (total_shares, average, now, player_id, stock_id),
            )
        else:
            total_shares = shares
            average = float(price)
            cursor.execute(
                """
                INSERT INTO portfolio_positions
                    (player_id, stock_id, shares_owned, average_buy_price, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (player_id, stock_id, total_shares, average, now, now),
            )
        return total_shares, average

    def _reduce_position(
        self, cursor, player_id: int, stock_id: int, remaining: int, now: int
    ) -> None:
        """Shrink a position to `remaining` shares, deleting it at zero."""
        if remaining == 0:
            cursor.execute(
                "DELETE FROM portfolio_positions WHERE player_id = ? AND stock_id = ?",
                (player_id, stock_id),
            )
        else:
            cursor.execute(
                """
                UPDATE portfolio_positions
                SET shares_owned = ?, updated_at = ?
                WHERE player_id = ? AND stock_id = ?
                """,
                (remaining, now, player_id, stock_id),
            )

    @staticmethod
    def _log_trade(
        cursor, player_id: int, stock_id: int, trade_type: str, shares: int, price: int, now: int
    ) -> None:
        cursor.execute(
            """
            INSERT INTO meme_stock_trades
                (player_id, stock_id, trade_type, shares, price_per_share, total_amount, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (player_id, stock_id, trade_type, shares, price, shares * price, now),
        )

    def buy_atomic(self, reddit_id: str, stock_id: int, chip_amount: int, now: int) -> dict:
        """
        Spend up to chip_amount on whole shares at the current price.

        Only shares * price is debited; the remainder of chip_amount stays
        with the player.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            player = self._load_player(cursor, reddit_id)
            stock = self._load_stock(cursor, stock_id)
            if not stock["is_active"]:
                raise StateConflictError(
                    "Stock is not currently trading", code=error_codes.STOCK_INACTIVE
                )

            price = stock["current_value"]
            shares = chip_amount // price
            if shares == 0:
                raise InsufficientFundsError(
                    "Insufficient chips to buy even one share",
                    code=error_codes.INSUFFICIENT_CHIPS_FOR_ONE_SHARE,
                )
            cost = shares * price
            if not self._apply_balance_delta(
                cursor, player["player_id"], -cost, now, require_funds=True
            ):
                raise InsufficientFundsError(
                    f"Insufficient chips: have {player['points']}, need {cost}"
                )

            total_shares, average = self._write_position(
                cursor, player["player_id"], stock_id, shares, price, now
            )
            self._log_trade(cursor, player["player_id"], stock_id, "buy", shares, price, now)

            return {
                "stock_id": stock_id,
                "stock_keyword": stock["keyword"],
                "shares_bought": shares,
                "price_per_share": price,
                "total_cost": cost,
                "total_shares": total_shares,
                "average_buy_price": average,
                "remaining_chips": player["points"] - cost,
            }

    def sell_atomic(self, reddit_id: str, stock_id: int, shares: int, now: int) -> dict:
        """
        Sell shares at the current price. Inactive stocks can still be sold.
        """
        with self.atomic_transaction() as conn:
            cursor = conn.cursor()
            player = self._load_player(cursor, reddit_id)
            stock = self._load_stock(cursor, stock_id)

            cursor.execute(
                """
                SELECT shares_owned, average_buy_price FROM portfolio_positions
                WHERE player_id = ? AND stock_id = ?
                """,
                (player["player_id"], stock_id),
            )
            position = cursor.fetchone()
            if not position:
                raise NotFoundError(
                    "No shares found for this stock", code=error_codes.POSITION_NOT_FOUND
                )
            if shares > position["shares_owned"]:
                raise StateConflictError(
                    f"Insufficient shares: own {position['shares_owned']}, tried to sell {shares}",
                    code=error_codes.INSUFFICIENT_SHARES,
                )

            price = stock["current_value"]
            payout = shares * price
            self._apply_balance_delta(cursor, player["player_id"], payout, now)

            remaining = position["shares_owned"] - shares
            self._reduce_position(cursor, player["player_id"], stock_id, remaining, now)
            self._log_trade(cursor, player["player_id"], stock_id, "sell", shares, price, now)

            return {
                "stock_id": stock_id,
                "stock_keyword": stock["keyword"],
                "shares_sold": shares,
                "price_per_share": price,
                "total_payout": payout,
                "profit_loss": payout - shares * position["average_buy_price"],
                "remaining_shares": remaining,
                "new_chip_balance": player["points"] + payout,
            }

    def get_position(self, player_id: int, stock_id: int) -> Position | None:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT player_id, stock_id, shares_owned, average_buy_price
                FROM portfolio_positions
                WHERE player_id = ? AND stock_id = ?
                """,
                (player_id, stock_id),
            )
            row = cursor.fetchone()
            return Position.from_row(row) if row else None

    def get_positions(self, player_id: int) -> list[dict]:
        """Positions joined with current prices."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT p.stock_id, s.keyword, s.current_value, s.is_active,
                       p.shares_owned, p.average_buy_price
                FROM portfolio_positions p
                JOIN meme_stocks s ON s.stock_id = p.stock_id
                WHERE p.player_id = ?
                ORDER BY s.keyword
                """,
                (player_id,),
            )
            positions = []
            for row in cursor.fetchall():
                position = Position(
                    player_id=player_id,
                    stock_id=row["stock_id"],
                    shares_owned=row["shares_owned"],
                    average_buy_price=float(row["average_buy_price"]),
                )
                price = row["current_value"]
                positions.append(
                    {
                        "stock_id": row["stock_id"],
                        "keyword": row["keyword"],
                        "is_active": bool(row["is_active"]),
                        "shares_owned": position.shares_owned,
                        "average_buy_price": position.average_buy_price,
                        "current_value": price,
                        "market_value": position.market_value(price),
                        "unrealized_profit": position.unrealized_profit(price),
                    }
                )
            return positions

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        """Players ranked by current market value of their holdings."""
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT pl.player_id, pl.reddit_username, pl.points,
                       SUM(p.shares_owned * s.current_value) AS portfolio_value,
                       SUM(p.shares_owned) AS total_shares,
                       SUM(p.shares_owned * s.current_value
                           - p.shares_owned * p.average_buy_price) AS profit_loss,
                       COUNT(p.stock_id) AS unique_stocks
                FROM portfolio_positions p
                JOIN players pl ON pl.player_id = p.player_id
                JOIN meme_stocks s ON s.stock_id = p.stock_id
                GROUP BY pl.player_id
                ORDER BY portfolio_value DESC, pl.player_id ASC
                LIMIT ?
                """,
                (limit,),
            )
            return [
                {
                    "player_id": row["player_id"],
                    "reddit_username": row["reddit_username"],
                    "points": row["points"],
                    "portfolio_value": row["portfolio_value"],
                    "total_shares": row["total_shares"],
                    "profit_loss": row["profit_loss"],
                    "unique_stocks": row["unique_stocks"],
                }
                for row in cursor.fetchall()
            ]

    def get_trades(self, player_id: int, limit: int = 20) -> list[dict]:
        with self.connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.trade_id, t.stock_id, s.keyword, t.trade_type, t.shares,
                       t.price_per_share, t.total_amount, t.created_at
                FROM meme_stock_trades t
                JOIN meme_stocks s ON s.stock_id = t.stock_id
                WHERE t.player_id = ?
                ORDER BY t.created_at DESC, t.trade_id DESC
                LIMIT ?
                """,
                (player_id, limit),
            )
            return [dict(row) for row in cursor.fetchall()]
