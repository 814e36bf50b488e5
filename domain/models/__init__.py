"""
Domain models - pure data structures representing business entities.
"""

from domain.models.player import Player
from domain.models.round import GameRound, HotPotatoRound, PostSnapshot
from domain.models.stock import MemeStock, Position
from domain.models.wager import HotPotatoWager, Wager

__all__ = [
    "Player",
    "PostSnapshot",
    "GameRound",
    "HotPotatoRound",
    "Wager",
    "HotPotatoWager",
    "MemeStock",
    "Position",
]
