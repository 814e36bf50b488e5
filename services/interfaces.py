"""
Service layer interfaces (ABCs).

These abstract base classes define the contracts for the services and for
the external content source. Tests substitute fakes that implement them.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.models.round import PostSnapshot
    from services.result import Result


class IContentSource(ABC):
    """Read-only view of Reddit used to open and settle rounds."""

    @abstractmethod
    def fetch_post(self, post_id: str) -> "PostSnapshot | None":
        """Return the post, or None if it no longer exists."""
        ...

    @abstractmethod
    def fetch_score(self, post_id: str) -> int:
        """Current score. Raises UpstreamUnavailableError when it cannot be read."""
        ...

    @abstractmethod
    def fetch_exists(self, post_id: str) -> bool:
        """Whether the post still exists. Raises UpstreamUnavailableError when unsure."""
        ...

    @abstractmethod
    def fetch_listing(
        self,
        subreddit: str,
        sort: str = "hot",
        time_filter: str | None = None,
        limit: int = 50,
    ) -> "list[PostSnapshot]":
        """Posts from a subreddit listing."""
        ...


class IPlayerService(ABC):
    @abstractmethod
    def get_or_create_player(
        self,
        reddit_id: str,
        reddit_username: str,
        avatar_url: str | None = None,
        now: int | None = None,
    ) -> "Result[dict]": ...

    @abstractmethod
    def get_player(self, reddit_id: str) -> "Result[dict]": ...

    @abstractmethod
    def claim_welfare(self, reddit_id: str, now: int | None = None) -> "Result[dict]": ...

    @abstractmethod
    def get_leaderboard(self, limit: int = 10) -> list[dict]: ...


class IRoundService(ABC):
    @abstractmethod
    def check_and_create_round(self, now: int | None = None) -> "Result[dict]":
        """Decide whether a new classic round is due."""
        ...

    @abstractmethod
    def create_round(
        self, post_a: "PostSnapshot", post_b: "PostSnapshot", now: int | None = None
    ) -> "Result[dict]": ...

    @abstractmethod
    def create_auto_round(self, now: int | None = None) -> "Result[dict]": ...

    @abstractmethod
    def get_active_rounds(self) -> list[dict]: ...

    @abstractmethod
    def get_round(self, round_id: int) -> "Result[dict]": ...

    @abstractmethod
    def get_previous_rounds(self, limit: int = 10) -> list[dict]: ...


class IWagerService(ABC):
    @abstractmethod
    def place_wager(
        self, round_id: int, reddit_id: str, side: str, amount: int, now: int | None = None
    ) -> "Result[dict]": ...

    @abstractmethod
    def get_player_history(self, reddit_id: str, limit: int = 20) -> "Result[list[dict]]": ...


class ISettlementService(ABC):
    @abstractmethod
    def settle_due_rounds(self, now: int | None = None) -> dict:
        """Settle every due classic round exactly once."""
        ...


class IHotPotatoService(ABC):
    @abstractmethod
    def create_hot_potato_round(
        self, post: "PostSnapshot", now: int | None = None
    ) -> "Result[dict]": ...

    @abstractmethod
    def place_hot_potato_wager(
        self,
        round_id: int,
        reddit_id: str,
        predicted_hours: int,
        amount: int,
        now: int | None = None,
    ) -> "Result[dict]": ...

    @abstractmethod
    def resolve_hot_potato_rounds(self, now: int | None = None) -> dict: ...


class IMarketService(ABC):
    @abstractmethod
    def buy(
        self, reddit_id: str, stock_id: int, chip_amount: int, now: int | None = None
    ) -> "Result[dict]": ...

    @abstractmethod
    def sell(
        self, reddit_id: str, stock_id: int, shares: int, now: int | None = None
    ) -> "Result[dict]": ...

    @abstractmethod
    def get_portfolio(self, reddit_id: str) -> "Result[dict]": ...
