"""
Service container for dependency injection and initialization.

The container is built explicitly by each entry point (HTTP app, scheduler
CLI, tests) and passed to whatever needs it. There is no process-wide
instance.

Usage:
    container = ServiceContainer(ServiceConfig(db_path="gamerit.db"))
    container.initialize()

    settlement = container.settlement_service
"""

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import config as app_config
from database import Database

# Repositories
from repositories.hot_potato_repository import HotPotatoRepository
from repositories.meme_stock_repository import MemeStockRepository
from repositories.player_repository import PlayerRepository
from repositories.portfolio_repository import PortfolioRepository
from repositories.round_repository import RoundRepository
from repositories.wager_repository import WagerRepository

if TYPE_CHECKING:
    from services.hot_potato_service import HotPotatoService
    from services.interfaces import IContentSource
    from services.market_service import MarketService
    from services.player_service import PlayerService
    from services.round_service import RoundService
    from services.scheduler_service import SchedulerService
    from services.settlement_service import SettlementService
    from services.wager_service import WagerService

logger = logging.getLogger("gamerit.infrastructure.container")


@dataclass
class RepositoryContainer:
    """Container for all repositories."""

    player: PlayerRepository | None = None
    round: RoundRepository | None = None
    wager: WagerRepository | None = None
    hot_potato: HotPotatoRepository | None = None
    meme_stock: MemeStockRepository | None = None
    portfolio: PortfolioRepository | None = None


@dataclass
class ServiceConfig:
    """Configuration for service initialization."""

    # Database
    db_path: str = field(default_factory=lambda: app_config.DB_PATH)

    # Economy
    starting_chips: int = field(default_factory=lambda: app_config.STARTING_CHIPS)
    min_wager: int = field(default_factory=lambda: app_config.MIN_WAGER)
    payout_multiplier: int = field(default_factory=lambda: app_config.WINNER_PAYOUT_MULTIPLIER)
    welfare_chips: int = field(default_factory=lambda: app_config.WELFARE_CHIPS)
    welfare_cooldown_seconds: int = field(
        default_factory=lambda: app_config.WELFARE_COOLDOWN_SECONDS
    )

    # Classic rounds
    round_duration_seconds: int = field(default_factory=lambda: app_config.ROUND_DURATION_SECONDS)
    round_safety_margin_seconds: int = field(
        default_factory=lambda: app_config.ROUND_SAFETY_MARGIN_SECONDS
    )

    # Hot potato
    hot_potato_duration_seconds: int = field(
        default_factory=lambda: app_config.HOT_POTATO_DURATION_SECONDS
    )
    hot_potato_max_active: int = field(default_factory=lambda: app_config.HOT_POTATO_MAX_ACTIVE)
    enable_hot_potato: bool = field(
        default_factory=lambda: app_config.SCHEDULER_ENABLE_HOT_POTATO
    )

    # Market
    market_history_window_seconds: int = field(
        default_factory=lambda: app_config.MARKET_HISTORY_WINDOW_SECONDS
    )

    # Seed for tie-break coin flips and subreddit sampling (None = system entropy)
    random_seed: int | None = None


class ServiceContainer:
    """
    Central container for all application services.

    Handles proper initialization order and dependency injection.

    Example:
        container = ServiceContainer(config, content_source=FakeContentSource())
        container.initialize()
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        content_source: "IContentSource | None" = None,
    ):
        """
        Initialize the container with configuration.

        Args:
            config: Service configuration (uses defaults if None)
            content_source: Reddit client override; a RedditClient is built if None
        """
        self.config = config or ServiceConfig()
        self._initialized = False
        self._repos = RepositoryContainer()
        self._content_source = content_source
        self._database: Database | None = None
        self._services: dict[str, Any] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Initialize all services in dependency order.

        Idempotent: calling it again has no effect.
        """
        if self._initialized:
            logger.debug("ServiceContainer already initialized, skipping")
            return

        logger.info("Initializing ServiceContainer...")
        self._init_database()
        self._init_repositories()
        self._init_content_source()
        self._init_core_services()
        self._init_game_services()
        self._init_scheduler()
        self._initialized = True
        logger.info("ServiceContainer initialization complete")

    def _init_database(self) -> None:
        logger.debug(f"Initializing database at {self.config.db_path}")
        self._database = Database(self.config.db_path)

    def _init_repositories(self) -> None:
        logger.debug("Initializing repositories")
        db_path = self.config.db_path
        self._repos.player = PlayerRepository(db_path)
        self._repos.round = RoundRepository(db_path)
        self._repos.wager = WagerRepository(db_path)
        self._repos.hot_potato = HotPotatoRepository(db_path)
        self._repos.meme_stock = MemeStockRepository(db_path)
        self._repos.portfolio = PortfolioRepository(db_path)

    def _init_content_source(self) -> None:
        if self._content_source is None:
            from reddit_integration import RedditClient

            self._content_source = RedditClient()

    def _rng(self) -> random.Random:
        return random.Random(self.config.random_seed)

    def _init_core_services(self) -> None:
        from services.market_service import MarketService
        from services.player_service import PlayerService

        self._services["player"] = PlayerService(
            self._repos.player,
            starting_chips=self.config.starting_chips,
            welfare_chips=self.config.welfare_chips,
            welfare_cooldown_seconds=self.config.welfare_cooldown_seconds,
        )
        self._services["market"] = MarketService(
            self._repos.meme_stock,
            self._repos.portfolio,
            self._repos.player,
            history_window_seconds=self.config.market_history_window_seconds,
        )

    def _init_game_services(self) -> None:
        from services.hot_potato_service import HotPotatoService
        from services.round_service import RoundService
        from services.settlement_service import SettlementService
        from services.wager_service import WagerService

        self._services["round"] = RoundService(
            self._repos.round,
            content_source=self._content_source,
            duration_seconds=self.config.round_duration_seconds,
            safety_margin_seconds=self.config.round_safety_margin_seconds,
            rng=self._rng(),
        )
        self._services["wager"] = WagerService(
            self._repos.wager,
            self._repos.player,
            min_wager=self.config.min_wager,
        )
        self._services["settlement"] = SettlementService(
            self._repos.round,
            self._repos.wager,
            self._content_source,
            payout_multiplier=self.config.payout_multiplier,
            rng=self._rng(),
        )
        self._services["hot_potato"] = HotPotatoService(
            self._repos.hot_potato,
            self._repos.player,
            content_source=self._content_source,
            duration_seconds=self.config.hot_potato_duration_seconds,
            max_active=self.config.hot_potato_max_active,
            min_wager=self.config.min_wager,
            rng=self._rng(),
        )

    def _init_scheduler(self) -> None:
        from services.scheduler_service import SchedulerService

        self._services["scheduler"] = SchedulerService(
            self._services["round"],
            self._services["settlement"],
            self._services["hot_potato"] if self.config.enable_hot_potato else None,
        )

    def _require(self, name: str) -> Any:
        if not self._initialized:
            raise RuntimeError("ServiceContainer.initialize() must be called first")
        return self._services[name]

    # --- Accessors ---

    @property
    def repositories(self) -> RepositoryContainer:
        return self._repos

    @property
    def content_source(self) -> "IContentSource":
        return self._content_source

    @property
    def player_service(self) -> "PlayerService":
        return self._require("player")

    @property
    def round_service(self) -> "RoundService":
        return self._require("round")

    @property
    def wager_service(self) -> "WagerService":
        return self._require("wager")

    @property
    def settlement_service(self) -> "SettlementService":
        return self._require("settlement")

    @property
    def hot_potato_service(self) -> "HotPotatoService":
        return self._require("hot_potato")

    @property
    def market_service(self) -> "MarketService":
        return self._require("market")

    @property
    def scheduler_service(self) -> "SchedulerService":
        return self._require("scheduler")
