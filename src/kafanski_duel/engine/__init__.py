"""Duel engine module - action catalog, action resolution, win rules and the duel state machine."""

from .catalog import (
    ACTION_CATALOG,
    ActionDefinition,
    StatEffect,
    annotate_catalog,
    get_action,
    get_actions_by_category,
    get_catalog_by_category,
    is_affordable,
    uses_left,
)
from .duel import DuelEngine, DuelResult
from .locks import DuelLockRegistry, duel_locks
from .logging import CombatLog, LogEntry, TurnLogRecorder
from .resolver import ActionResolver, foul_chance
from .rules import DuelOutcome, check_duel_over, rank_on_points
from .types import CombatState, StatBounds, StatChange, TurnResult

__all__ = [
    "ACTION_CATALOG",
    "ActionDefinition",
    "StatEffect",
    "annotate_catalog",
    "get_action",
    "get_actions_by_category",
    "get_catalog_by_category",
    "is_affordable",
    "uses_left",
    "DuelEngine",
    "DuelResult",
    "DuelLockRegistry",
    "duel_locks",
    "CombatLog",
    "LogEntry",
    "TurnLogRecorder",
    "ActionResolver",
    "foul_chance",
    "DuelOutcome",
    "check_duel_over",
    "rank_on_points",
    "CombatState",
    "StatBounds",
    "StatChange",
    "TurnResult",
]
