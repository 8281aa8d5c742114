"""Service layer for duel logic."""

from .duels import DuelService, Lobby
from .gateway import DuelGateway
from .players import PlayerService

__all__ = [
    "PlayerService",
    "DuelService",
    "DuelGateway",
    "Lobby",
]
