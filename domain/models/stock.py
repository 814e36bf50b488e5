"""
Meme stock market domain models.
"""

import json
from dataclasses import dataclass, field


@dataclass
class MemeStock:
    """A tradeable meme keyword with its price history."""

    stock_id: int
    keyword: str
    current_value: int
    is_active: bool = True
    history: list[dict] = field(default_factory=list)
    created_at: int | None = None
    updated_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "MemeStock":
        return cls(
            stock_id=row["stock_id"],
            keyword=row["keyword"],
            current_value=row["current_value"],
            is_active=bool(row["is_active"]),
            history=json.loads(row["history"] or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return {
            "stock_id": self.stock_id,
            "keyword": self.keyword,
            "current_value": self.current_value,
            "is_active": self.is_active,
            "history": self.history,
            "updated_at": self.updated_at,
        }


@dataclass
class Position:
    """Shares a player holds in one stock, with weighted-average cost basis."""

    player_id: int
    stock_id: int
    shares_owned: int
    average_buy_price: float

    @property
    def cost_basis(self) -> float:
        return self.shares_owned * self.average_buy_price

    def market_value(self, price: int) -> int:
        return self.shares_owned * price

    def unrealized_profit(self, price: int) -> float:
        return self.market_value(price) - self.cost_basis

    @classmethod
    def from_row(cls, row) -> "Position":
        return cls(
            player_id=row["player_id"],
            stock_id=row["stock_id"],
            shares_owned=row["shares_owned"],
            average_buy_price=float(row["average_buy_price"]),
        )
