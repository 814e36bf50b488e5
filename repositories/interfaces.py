"""
Abstract repository interfaces for data access.

These interfaces define the contracts implemented by concrete repositories.
"""

from abc import ABC, abstractmethod


class IPlayerRepository(ABC):
    @abstractmethod
    def get_or_create(
        self,
        reddit_id: str,
        reddit_username: str,
        avatar_url: str | None,
        starting_points: int,
        now: int,
    ): ...

    @abstractmethod
    def get_by_reddit_id(self, reddit_id: str): ...

    @abstractmethod
    def get_by_id(self, player_id: int): ...

    @abstractmethod
    def get_balance(self, player_id: int) -> int: ...

    @abstractmethod
    def get_leaderboard(self, limit: int = 10): ...

    @abstractmethod
    def claim_welfare_atomic(
        self, reddit_id: str, amount: int, cooldown_seconds: int, now: int
    ): ...


class IRoundRepository(ABC):
    @abstractmethod
    def create_round_atomic(self, post_a, post_b, duration_seconds: int, now: int) -> int: ...

    @abstractmethod
    def get_round(self, round_id: int): ...

    @abstractmethod
    def get_active_rounds(self): ...

    @abstractmethod
    def has_active_round(self) -> bool: ...

    @abstractmethod
    def get_latest_created_at(self) -> int | None: ...

    @abstractmethod
    def get_previous_rounds(self, limit: int = 10): ...

    @abstractmethod
    def get_due_rounds(self, now: int): ...

    @abstractmethod
    def get_pending_payout_rounds(self): ...

    @abstractmethod
    def get_recent_post_ids(self, limit: int) -> set[str]: ...

    @abstractmethod
    def mark_pending_payout(
        self,
        round_id: int,
        post_a_final_score: int,
        post_b_final_score: int,
        winner: str,
        now: int,
    ) -> bool: ...

    @abstractmethod
    def mark_finished(self, round_id: int) -> bool: ...

    @abstractmethod
    def get_round_pot(self, round_id: int) -> dict: ...


class IWagerRepository(ABC):
    @abstractmethod
    def place_wager_atomic(
        self, round_id: int, reddit_id: str, side: str, amount: int, now: int
    ): ...

    @abstractmethod
    def get_wagers_for_round(self, round_id: int): ...

    @abstractmethod
    def get_player_wager(self, round_id: int, player_id: int): ...

    @abstractmethod
    def get_unpaid_winning_wagers(self, round_id: int, side: str): ...

    @abstractmethod
    def pay_wager_atomic(self, wager_id: int, player_id: int, payout: int, now: int) -> bool: ...

    @abstractmethod
    def get_player_history(self, player_id: int, limit: int = 20) -> list[dict]: ...


class IHotPotatoRepository(ABC):
    @abstractmethod
    def create_round_atomic(
        self,
        post,
        controversy_score: int,
        now: int,
        duration_seconds: int,
        max_active: int,
        recent_lookback: int,
    ) -> int: ...

    @abstractmethod
    def get_round(self, round_id: int): ...

    @abstractmethod
    def get_active_rounds(self): ...

    @abstractmethod
    def count_active(self) -> int: ...

    @abstractmethod
    def get_recent_post_ids(self, limit: int) -> set[str]: ...

    @abstractmethod
    def place_wager_atomic(
        self, round_id: int, reddit_id: str, predicted_hours: int, amount: int, now: int
    ): ...

    @abstractmethod
    def get_wagers_for_round(self, round_id: int): ...

    @abstractmethod
    def update_final_score(self, round_id: int, score: int) -> bool: ...

    @abstractmethod
    def resolve_round_atomic(
        self,
        round_id: int,
        status: str,
        now: int,
        target_hours: float,
        deletion_time: int | None = None,
    ) -> dict | None: ...


class IMemeStockRepository(ABC):
    @abstractmethod
    def get_stock(self, stock_id: int): ...

    @abstractmethod
    def get_by_keyword(self, keyword: str): ...

    @abstractmethod
    def list_stocks(self, active_only: bool = True): ...

    @abstractmethod
    def create_stock(self, keyword: str, initial_value: int, now: int) -> int: ...

    @abstractmethod
    def record_price(self, stock_id: int, value: int, now: int, window_seconds: int): ...

    @abstractmethod
    def set_active(self, stock_id: int, is_active: bool, now: int) -> bool: ...


class IPortfolioRepository(ABC):
    @abstractmethod
    def buy_atomic(self, reddit_id: str, stock_id: int, chip_amount: int, now: int) -> dict: ...

    @abstractmethod
    def sell_atomic(self, reddit_id: str, stock_id: int, shares: int, now: int) -> dict: ...

    @abstractmethod
    def get_position(self, player_id: int, stock_id: int): ...

    @abstractmethod
    def get_positions(self, player_id: int) -> list[dict]: ...

    @abstractmethod
    def get_leaderboard(self, limit: int = 10) -> list[dict]: ...

    @abstractmethod
    def get_trades(self, player_id: int, limit: int = 20) -> list[dict]: ...
