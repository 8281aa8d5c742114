"""Win/loss rules evaluated after every committed action."""

from dataclasses import dataclass

from ..db.models.enums import FinishReason
from .types import TURN_CAP, CombatState


@dataclass
class DuelOutcome:
    """A decided duel."""

    winner_id: int
    loser_id: int
    reason: FinishReason


def check_duel_over(
    actor: CombatState,
    opponent: CombatState,
    turn_number: int,
    challenger_id: int,
) -> DuelOutcome | None:
    """Evaluate loss conditions in fixed priority order.

    1. Respect at or below the floor (actor checked first)
    2. Drunken fouls at or above the threshold (actor checked first)
    3. Turn cap reached - decided on points

    Args:
        actor: State of the player who just acted
        opponent: State of the other player
        turn_number: Turn the action was committed on
        challenger_id: Player ID of the challenger (player1)

    Returns:
        DuelOutcome if the duel is over, None otherwise
    """
    for loser, winner in ((actor, opponent), (opponent, actor)):
        if loser.is_disgraced():
            return DuelOutcome(winner.player_id, loser.player_id, FinishReason.RESPECT)

    for loser, winner in ((actor, opponent), (opponent, actor)):
        if loser.is_fouled_out():
            return DuelOutcome(winner.player_id, loser.player_id, FinishReason.FOULS)

    if turn_number >= TURN_CAP:
        winner, loser = rank_on_points(actor, opponent, challenger_id)
        return DuelOutcome(winner.player_id, loser.player_id, FinishReason.TURN_CAP)

    return None


def rank_on_points(
    first: CombatState,
    second: CombatState,
    challenger_id: int,
) -> tuple[CombatState, CombatState]:
    """Order two players as (winner, loser) when the turn cap is hit.

    Higher respect wins, then fewer fouls, then the challenger.
    """

    def score(state: CombatState) -> tuple[int, int, int]:
        return (state.respect, -state.pijani_foulovi, 1 if state.player_id == challenger_id else 0)

    if score(first) >= score(second):
        return first, second
    return second, first
