"""
Player domain model.
"""

from dataclasses import dataclass


@dataclass
class Player:
    """
    A Reddit account playing Gamerit.

    This is a pure domain model with no infrastructure dependencies.
    """

    player_id: int
    reddit_id: str
    reddit_username: str
    points: int = 1000
    avatar_url: str | None = None
    xp: int = 0
    level: int = 1
    # Lifetime balance extremes, maintained alongside every balance change
    lowest_points: int | None = None
    highest_points: int | None = None
    last_welfare_claim: int | None = None
    created_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "Player":
        return cls(
            player_id=row["player_id"],
            reddit_id=row["reddit_id"],
            reddit_username=row["reddit_username"],
            points=row["points"],
            avatar_url=row["avatar_url"],
            xp=row["xp"],
            level=row["level"],
            lowest_points=row["lowest_points"],
            highest_points=row["highest_points"],
            last_welfare_claim=row["last_welfare_claim"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "reddit_id": self.reddit_id,
            "reddit_username": self.reddit_username,
            "avatar_url": self.avatar_url,
            "points": self.points,
            "xp": self.xp,
            "level": self.level,
            "lowest_points": self.lowest_points,
            "highest_points": self.highest_points,
            "last_welfare_claim": self.last_welfare_claim,
        }
