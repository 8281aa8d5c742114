"""Action resolver - applies one catalog action to the two combat states."""

import random

from ..db.models.enums import CombatStat, TargetType
from .catalog import ActionDefinition
from .types import (
    BASE_FOUL_CHANCE,
    DRUNK_THRESHOLD,
    FOUL_RESPECT_PENALTY,
    MAX_FOUL_CHANCE,
    OVERFLOW_RESPECT_PENALTY,
    STAT_BOUNDS,
    CombatState,
    StatChange,
    TurnResult,
)

FOUL_TEMPLATES = (
    "{player} se zanese i obori sto. Pijani faul!",
    "{player} krene da peva, ali zaboravi tekst i padne sa stolice. Pijani faul!",
    "{player} zagrli konobara misleći da je {opponent}. Pijani faul!",
)

OVERFLOW_TEMPLATES = (
    "{player} ne može više ni zalogaj i mora da izađe na vazduh.",
    "Stomak više ne može: {player} trči do toaleta pred celom kafanom.",
)


def foul_chance(alcometer: int) -> float:
    """Chance of a drunken foul at a given alcometer reading."""
    if alcometer < DRUNK_THRESHOLD:
        return 0.0
    return min(MAX_FOUL_CHANCE, BASE_FOUL_CHANCE + (alcometer - DRUNK_THRESHOLD) / 100)


class ActionResolver:
    """Resolves a single action.

    All randomness goes through the injected ``rng`` and happens only here,
    at commit time, so reading state back never re-rolls anything.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def resolve(
        self,
        action: ActionDefinition,
        actor: CombatState,
        opponent: CombatState,
        turn_number: int,
    ) -> TurnResult:
        """Apply cost, effects, overflow and foul rolls.

        Affordability and usage limits must be checked by the caller first.

        Args:
            action: Catalog action being played
            actor: State of the acting player (mutated)
            opponent: State of the other player (mutated)
            turn_number: Turn this action is committed on

        Returns:
            TurnResult with rendered flavor text and applied changes
        """
        result = TurnResult(
            turn_number=turn_number,
            player_id=actor.player_id,
            action_key=action.key,
            flavor_text="",
        )

        if action.cost:
            spent = actor.apply_delta(CombatStat.NOVCANIK, -action.cost)
            result.add_change(StatChange(actor.player_id, CombatStat.NOVCANIK, spent))

        if action.max_uses is not None:
            actor.record_use(action.key)

        # Only the actor's own food and drink can overflow
        stomach_limit = STAT_BOUNDS[CombatStat.STOMAK].maximum if action.ingests else None

        for effect in action.effects:
            target = actor if effect.target == TargetType.SELF else opponent
            delta = effect.amount
            if effect.spread:
                delta += self.rng.randint(-effect.spread, effect.spread)

            if (
                stomach_limit is not None
                and effect.target == TargetType.SELF
                and effect.stat == CombatStat.STOMAK
                and delta > 0
                and actor.stomak + delta > stomach_limit
            ):
                result.overflowed = True

            applied = target.apply_delta(effect.stat, delta)
            result.add_change(StatChange(target.player_id, effect.stat, applied))

        lines = [self._render(action.flavor_templates, actor, opponent)]

        if result.overflowed:
            applied = actor.apply_delta(CombatStat.RESPECT, -OVERFLOW_RESPECT_PENALTY)
            result.add_change(StatChange(actor.player_id, CombatStat.RESPECT, applied))
            lines.append(self._render(OVERFLOW_TEMPLATES, actor, opponent))

        chance = foul_chance(actor.alcometer)
        if chance and self.rng.random() < chance:
            result.fouled = True
            fouls = actor.apply_delta(CombatStat.PIJANI_FOULOVI, 1)
            result.add_change(StatChange(actor.player_id, CombatStat.PIJANI_FOULOVI, fouls))
            applied = actor.apply_delta(CombatStat.RESPECT, -FOUL_RESPECT_PENALTY)
            result.add_change(StatChange(actor.player_id, CombatStat.RESPECT, applied))
            lines.append(self._render(FOUL_TEMPLATES, actor, opponent))

        actor.clamp_all()
        opponent.clamp_all()

        result.flavor_text = " ".join(lines)
        return result

    def _render(self, templates: tuple[str, ...], actor: CombatState, opponent: CombatState) -> str:
        template = self.rng.choice(templates)
        return template.format(
            player=actor.display_name or f"Igrač {actor.player_id}",
            opponent=opponent.display_name or f"Igrač {opponent.player_id}",
        )
