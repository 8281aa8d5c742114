"""Type definitions and tuning constants for the duel engine."""

from dataclasses import dataclass, field
from typing import Any

from ..db.models.enums import CombatStat, FinishReason


@dataclass(frozen=True)
class StatBounds:
    """Inclusive range for a stat. ``maximum=None`` means unbounded."""

    minimum: int
    maximum: int | None

    def clamp(self, value: int) -> int:
        value = max(self.minimum, value)
        if self.maximum is not None:
            value = min(self.maximum, value)
        return value


STAT_BOUNDS: dict[CombatStat, StatBounds] = {
    CombatStat.ALCOMETER: StatBounds(0, 150),
    CombatStat.RESPECT: StatBounds(0, 100),
    CombatStat.STOMAK: StatBounds(0, 100),
    CombatStat.NOVCANIK: StatBounds(0, None),
    CombatStat.PIJANI_FOULOVI: StatBounds(0, 3),
}

STARTING_STATS: dict[CombatStat, int] = {
    CombatStat.ALCOMETER: 0,
    CombatStat.RESPECT: 50,
    CombatStat.STOMAK: 20,
    CombatStat.NOVCANIK: 1000,
    CombatStat.PIJANI_FOULOVI: 0,
}

# Loss conditions
RESPECT_FLOOR = 0
FOUL_THRESHOLD = 3
TURN_CAP = 10

# Drunk fouls
DRUNK_THRESHOLD = 100
BASE_FOUL_CHANCE = 0.25
MAX_FOUL_CHANCE = 0.75
FOUL_RESPECT_PENALTY = 10

# Eating or drinking past a full stomach
OVERFLOW_RESPECT_PENALTY = 15


@dataclass
class CombatState:
    """In-memory combat state of one player during action resolution.

    Mutated while an action resolves, then written back to PlayerCombatState.
    """

    player_id: int
    alcometer: int
    respect: int
    stomak: int
    novcanik: int
    pijani_foulovi: int = 0
    action_uses: dict[str, int] = field(default_factory=dict)
    display_name: str = ""

    @classmethod
    def starting(cls, player_id: int, display_name: str = "") -> "CombatState":
        """Fresh state for a newly accepted duel."""
        return cls(
            player_id=player_id,
            alcometer=STARTING_STATS[CombatStat.ALCOMETER],
            respect=STARTING_STATS[CombatStat.RESPECT],
            stomak=STARTING_STATS[CombatStat.STOMAK],
            novcanik=STARTING_STATS[CombatStat.NOVCANIK],
            pijani_foulovi=STARTING_STATS[CombatStat.PIJANI_FOULOVI],
            display_name=display_name,
        )

    def get(self, stat: CombatStat) -> int:
        return getattr(self, stat.value)

    def apply_delta(self, stat: CombatStat, amount: int) -> int:
        """Change a stat, clamped to its bounds. Returns the actual change."""
        current = self.get(stat)
        new_value = STAT_BOUNDS[stat].clamp(current + amount)
        setattr(self, stat.value, new_value)
        return new_value - current

    def clamp_all(self) -> None:
        """Force every stat back into its bounds."""
        for stat, bounds in STAT_BOUNDS.items():
            setattr(self, stat.value, bounds.clamp(self.get(stat)))

    def uses_of(self, action_key: str) -> int:
        return self.action_uses.get(action_key, 0)

    def record_use(self, action_key: str) -> None:
        self.action_uses[action_key] = self.uses_of(action_key) + 1

    def is_disgraced(self) -> bool:
        """Respect at or below the floor."""
        return self.respect <= RESPECT_FLOOR

    def is_fouled_out(self) -> bool:
        return self.pijani_foulovi >= FOUL_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for state views."""
        return {
            "player_id": self.player_id,
            "display_name": self.display_name,
            "alcometer": self.alcometer,
            "respect": self.respect,
            "stomak": self.stomak,
            "novcanik": self.novcanik,
            "pijani_foulovi": self.pijani_foulovi,
            "action_uses": dict(self.action_uses),
        }


@dataclass
class StatChange:
    """A single applied stat change."""

    player_id: int
    stat: CombatStat
    value: int


@dataclass
class TurnResult:
    """Result of one committed action."""

    turn_number: int
    player_id: int
    action_key: str
    flavor_text: str
    changes: list[StatChange] = field(default_factory=list)
    fouled: bool = False
    overflowed: bool = False
    is_duel_over: bool = False
    winner_id: int | None = None
    finish_reason: FinishReason | None = None

    def add_change(self, change: StatChange) -> None:
        """Record a stat change, skipping no-ops."""
        if change.value != 0:
            self.changes.append(change)
