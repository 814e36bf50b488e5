"""
Round domain models for classic and hot potato games.
"""

from dataclasses import dataclass

ROUND_ACTIVE = "active"
ROUND_PENDING_PAYOUT = "pending_payout"
ROUND_FINISHED = "finished"

HOT_POTATO_ACTIVE = "active"
HOT_POTATO_DELETED = "deleted"
HOT_POTATO_SURVIVED = "survived"
HOT_POTATO_EXPIRED = "expired"

SIDE_A = "A"
SIDE_B = "B"
SIDES = (SIDE_A, SIDE_B)


@dataclass
class PostSnapshot:
    """Reddit post as captured when a round is created."""

    post_id: str
    title: str
    author: str | None = None
    subreddit: str | None = None
    score: int = 0
    url: str | None = None
    num_comments: int = 0
    upvote_ratio: float = 1.0
    created_utc: int | None = None
    over_18: bool = False
    stickied: bool = False

    @classmethod
    def from_listing(cls, data: dict) -> "PostSnapshot":
        """Build from the `data` object of a Reddit t3 listing child."""
        permalink = data.get("permalink")
        return cls(
            post_id=data["id"],
            title=data.get("title") or "",
            author=data.get("author"),
            subreddit=data.get("subreddit"),
            score=int(data.get("score") or 0),
            url=f"https://www.reddit.com{permalink}" if permalink else data.get("url"),
            num_comments=int(data.get("num_comments") or 0),
            upvote_ratio=float(data.get("upvote_ratio", 1.0)),
            created_utc=int(data["created_utc"]) if data.get("created_utc") else None,
            over_18=bool(data.get("over_18")),
            stickied=bool(data.get("stickied")),
        )


@dataclass
class GameRound:
    """A 24h post-vs-post betting round."""

    round_id: int
    created_at: int
    duration_seconds: int
    post_a: PostSnapshot
    post_b: PostSnapshot
    status: str = ROUND_ACTIVE
    post_a_final_score: int | None = None
    post_b_final_score: int | None = None
    winner: str | None = None
    settled_at: int | None = None

    @property
    def deadline(self) -> int:
        return self.created_at + self.duration_seconds

    @classmethod
    def from_row(cls, row) -> "GameRound":
        return cls(
            round_id=row["round_id"],
            created_at=row["created_at"],
            duration_seconds=row["duration_seconds"],
            post_a=PostSnapshot(
                post_id=row["post_a_id"],
                title=row["post_a_title"],
                author=row["post_a_author"],
                subreddit=row["post_a_subreddit"],
                score=row["post_a_initial_score"],
            ),
            post_b=PostSnapshot(
                post_id=row["post_b_id"],
                title=row["post_b_title"],
                author=row["post_b_author"],
                subreddit=row["post_b_subreddit"],
                score=row["post_b_initial_score"],
            ),
            status=row["status"],
            post_a_final_score=row["post_a_final_score"],
            post_b_final_score=row["post_b_final_score"],
            winner=row["winner"],
            settled_at=row["settled_at"],
        )

    def to_dict(self) -> dict:
        return {
            "round_id": self.round_id,
            "created_at": self.created_at,
            "deadline": self.deadline,
            "status": self.status,
            "winner": self.winner,
            "settled_at": self.settled_at,
            "post_a": {
                "id": self.post_a.post_id,
                "title": self.post_a.title,
                "author": self.post_a.author,
                "subreddit": self.post_a.subreddit,
                "initial_score": self.post_a.score,
                "final_score": self.post_a_final_score,
            },
            "post_b": {
                "id": self.post_b.post_id,
                "title": self.post_b.title,
                "author": self.post_b.author,
                "subreddit": self.post_b.subreddit,
                "initial_score": self.post_b.score,
                "final_score": self.post_b_final_score,
            },
        }


@dataclass
class HotPotatoRound:
    """A deletion-time prediction round on a controversial post."""

    round_id: int
    post_id: str
    post_title: str
    created_at: int
    expires_at: int
    post_author: str | None = None
    post_subreddit: str | None = None
    post_url: str | None = None
    controversy_score: int = 0
    initial_score: int = 0
    final_score: int | None = None
    status: str = HOT_POTATO_ACTIVE
    actual_deletion_time: int | None = None
    resolved_at: int | None = None

    def hours_elapsed(self, at: int) -> float:
        return (at - self.created_at) / 3600

    @classmethod
    def from_row(cls, row) -> "HotPotatoRound":
        return cls(
            round_id=row["round_id"],
            post_id=row["post_id"],
            post_title=row["post_title"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            post_author=row["post_author"],
            post_subreddit=row["post_subreddit"],
            post_url=row["post_url"],
            controversy_score=row["controversy_score"],
            initial_score=row["initial_score"],
            final_score=row["final_score"],
            status=row["status"],
            actual_deletion_time=row["actual_deletion_time"],
            resolved_at=row["resolved_at"],
        )

    def to_dict(self) -> dict:
        return {
            "round_id": self.round_id,
            "post_id": self.post_id,
            "post_title": self.post_title,
            "post_author": self.post_author,
            "post_subreddit": self.post_subreddit,
            "post_url": self.post_url,
            "controversy_score": self.controversy_score,
            "initial_score": self.initial_score,
            "final_score": self.final_score,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "status": self.status,
            "actual_deletion_time": self.actual_deletion_time,
        }
