"""
Wager domain models.
"""

from dataclasses import dataclass


@dataclass
class Wager:
    """A stake on one side of a classic round."""

    wager_id: int
    round_id: int
    player_id: int
    side: str
    amount: int
    created_at: int
    payout: int | None = None
    paid_at: int | None = None

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None

    @classmethod
    def from_row(cls, row) -> "Wager":
        return cls(
            wager_id=row["wager_id"],
            round_id=row["round_id"],
            player_id=row["player_id"],
            side=row["side"],
            amount=row["amount"],
            created_at=row["created_at"],
            payout=row["payout"],
            paid_at=row["paid_at"],
        )

    def to_dict(self) -> dict:
        return {
            "wager_id": self.wager_id,
            "round_id": self.round_id,
            "player_id": self.player_id,
            "side": self.side,
            "amount": self.amount,
            "created_at": self.created_at,
            "payout": self.payout,
        }


@dataclass
class HotPotatoWager:
    """A deletion-time prediction (in hours) on a hot potato round."""

    wager_id: int
    round_id: int
    player_id: int
    predicted_hours: int
    amount: int
    created_at: int
    payout: int | None = None
    paid_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "HotPotatoWager":
        return cls(
            wager_id=row["wager_id"],
            round_id=row["round_id"],
            player_id=row["player_id"],
            predicted_hours=row["predicted_hours"],
            amount=row["amount"],
            created_at=row["created_at"],
            payout=row["payout"],
            paid_at=row["paid_at"],
        )

    def to_dict(self) -> dict:
        return {
            "wager_id": self.wager_id,
            "round_id": self.round_id,
            "player_id": self.player_id,
            "predicted_hours": self.predicted_hours,
            "amount": self.amount,
            "created_at": self.created_at,
            "payout": self.payout,
        }
