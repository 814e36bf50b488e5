"""
Repository layer for data access abstraction.
"""

from repositories.base_repository import BaseRepository
from repositories.hot_potato_repository import HotPotatoRepository
from repositories.interfaces import (
    IHotPotatoRepository,
    IMemeStockRepository,
    IPlayerRepository,
    IPortfolioRepository,
    IRoundRepository,
    IWagerRepository,
)
from repositories.meme_stock_repository import MemeStockRepository
from repositories.player_repository import PlayerRepository
from repositories.portfolio_repository import PortfolioRepository
from repositories.round_repository import RoundRepository
from repositories.wager_repository import WagerRepository

__all__ = [
    "BaseRepository",
    "PlayerRepository",
    "RoundRepository",
    "WagerRepository",
    "HotPotatoRepository",
    "MemeStockRepository",
    "PortfolioRepository",
    "IPlayerRepository",
    "IRoundRepository",
    "IWagerRepository",
    "IHotPotatoRepository",
    "IMemeStockRepository",
    "IPortfolioRepository",
]
