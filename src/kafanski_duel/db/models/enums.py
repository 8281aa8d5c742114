"""Enums for game models."""

from enum import Enum


class DuelStatus(str, Enum):
    """Status of a duel.

    waiting -> active -> finished
    waiting -> declined
    """

    WAITING = "waiting"  # Challenge sent, waiting for the challenged player
    ACTIVE = "active"  # Accepted, turns being played
    FINISHED = "finished"  # Someone lost or surrendered
    DECLINED = "declined"  # Challenged player refused


class ActionCategory(str, Enum):
    """Catalog partitions."""

    PICE = "pice"  # Drinks
    HRANA = "hrana"  # Food
    SPECIJAL = "specijal"  # Specials


class CombatStat(str, Enum):
    """Per-player resource stats tracked in a duel."""

    ALCOMETER = "alcometer"
    RESPECT = "respect"
    STOMAK = "stomak"
    NOVCANIK = "novcanik"
    PIJANI_FOULOVI = "pijani_foulovi"


class TargetType(str, Enum):
    """Who an action effect applies to."""

    SELF = "self"
    OPPONENT = "opponent"


class FinishReason(str, Enum):
    """Why a duel ended."""

    RESPECT = "respect"  # Respect dropped to the floor
    FOULS = "fouls"  # Too many drunken fouls
    TURN_CAP = "turn_cap"  # Turn limit reached, decided on points
    SURRENDER = "surrender"


class DuelError(str, Enum):
    """Reasons an operation can be rejected."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_STATE = "invalid_state"
    UNKNOWN_ACTION = "unknown_action"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CONFLICT = "conflict"
    ACTION_EXHAUSTED = "action_exhausted"
