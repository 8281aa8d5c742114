"""Database models."""

from .base import Base, TimestampMixin
from .duels import Duel, DuelLogEntry, make_pair_key
from .enums import (
    ActionCategory,
    CombatStat,
    DuelError,
    DuelStatus,
    FinishReason,
    TargetType,
)
from .players import Player, PlayerCombatState

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "ActionCategory",
    "CombatStat",
    "DuelError",
    "DuelStatus",
    "FinishReason",
    "TargetType",
    # Players
    "Player",
    "PlayerCombatState",
    # Duels
    "Duel",
    "DuelLogEntry",
    "make_pair_key",
]
