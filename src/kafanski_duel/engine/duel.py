"""Duel engine - the authoritative state machine of a duel.

Status transitions:
    waiting -> active -> finished
    waiting -> declined

Every mutating operation runs under the duel's lock, validates everything
before touching state, and commits the state delta, the log entry and the
turn flip together.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.base import utcnow
from ..db.models.duels import Duel, make_pair_key
from ..db.models.enums import DuelError, DuelStatus, FinishReason
from ..db.models.players import Player, PlayerCombatState
from .catalog import annotate_catalog, get_action, is_affordable
from .locks import DuelLockRegistry, duel_key, duel_locks
from .logging import SURRENDER_ACTION, TurnLogRecorder
from .resolver import ActionResolver
from .rules import check_duel_over
from .types import TURN_CAP, CombatState, TurnResult

logger = logging.getLogger(__name__)

DEFAULT_STATE_LOG_LIMIT = 8


@dataclass
class DuelResult:
    """Result of a duel operation."""

    success: bool
    message: str
    duel_id: int | None = None
    error: DuelError | None = None
    turn_result: TurnResult | None = None
    state: dict[str, Any] | None = None

    @classmethod
    def fail(cls, error: DuelError, message: str, duel_id: int | None = None) -> "DuelResult":
        return cls(success=False, message=message, duel_id=duel_id, error=error)


class DuelEngine:
    """Main duel engine - owns duel state from challenge to finish."""

    def __init__(
        self,
        session: AsyncSession,
        rng: random.Random | None = None,
        locks: DuelLockRegistry | None = None,
    ) -> None:
        self.session = session
        self.locks = locks or duel_locks
        self.resolver = ActionResolver(rng)
        self.turn_log = TurnLogRecorder(session)

    async def create_duel(self, challenger_id: int, challenged_id: int) -> DuelResult:
        """Create a new challenge in ``waiting`` status.

        Args:
            challenger_id: Player ID of the challenger (player1, moves first)
            challenged_id: Player ID of the challenged player (player2)

        Returns:
            DuelResult with the created duel ID
        """
        stmt = select(func.count()).select_from(Player).where(Player.id.in_((challenger_id, challenged_id)))
        if (await self.session.execute(stmt)).scalar_one() != len({challenger_id, challenged_id}):
            return DuelResult.fail(DuelError.NOT_FOUND, "Taj igrač ne postoji.")

        duel = Duel(
            player1_id=challenger_id,
            player2_id=challenged_id,
            status=DuelStatus.WAITING,
            turn_number=1,
            current_turn_user_id=None,
            live_pair_key=make_pair_key(challenger_id, challenged_id),
        )
        # Savepoint, so a lost race keeps the caller's pending work
        try:
            async with self.session.begin_nested():
                self.session.add(duel)
        except IntegrityError as e:
            if "live_pair_key" not in str(e.orig):
                raise
            return DuelResult.fail(DuelError.CONFLICT, "Već postoji otvoren duel između vas dvoje.")

        await self.session.commit()
        logger.info(f"Duel {duel.id} created: {challenger_id} challenges {challenged_id}")

        return DuelResult(success=True, message="Izazov poslat", duel_id=duel.id)

    async def accept_duel(self, duel_id: int, player_id: int) -> DuelResult:
        """Accept a waiting challenge and set up both combat states.

        Only the challenged player may accept. The challenger moves first.
        """
        async with self.locks.hold(duel_key(duel_id)):
            duel = await self._load_duel(duel_id, for_update=True)
            if duel is None:
                return DuelResult.fail(DuelError.NOT_FOUND, "Duel ne postoji.")

            if player_id != duel.player2_id:
                return DuelResult.fail(DuelError.FORBIDDEN, "Samo izazvani igrač može da prihvati duel.", duel_id)

            if duel.status != DuelStatus.WAITING:
                return DuelResult.fail(DuelError.CONFLICT, f"Duel je već {duel.status.value}.", duel_id)

            duel.status = DuelStatus.ACTIVE
            duel.turn_number = 1
            duel.current_turn_user_id = duel.player1_id

            for pid in (duel.player1_id, duel.player2_id):
                start = CombatState.starting(pid)
                self.session.add(
                    PlayerCombatState(
                        player_id=pid,
                        duel_id=duel.id,
                        alcometer=start.alcometer,
                        respect=start.respect,
                        stomak=start.stomak,
                        novcanik=start.novcanik,
                        pijani_foulovi=start.pijani_foulovi,
                        action_uses={},
                    )
                )

            await self.session.commit()
            logger.info(f"Duel {duel_id} accepted by {player_id}, {duel.player1_id} moves first")

            return DuelResult(success=True, message="Duel je počeo!", duel_id=duel_id)

    async def decline_duel(self, duel_id: int, player_id: int) -> DuelResult:
        """Decline a waiting challenge. Terminal."""
        async with self.locks.hold(duel_key(duel_id)):
            duel = await self._load_duel(duel_id, for_update=True)
            if duel is None:
                return DuelResult.fail(DuelError.NOT_FOUND, "Duel ne postoji.")

            if player_id != duel.player2_id:
                return DuelResult.fail(DuelError.FORBIDDEN, "Samo izazvani igrač može da odbije duel.", duel_id)

            if duel.status != DuelStatus.WAITING:
                return DuelResult.fail(DuelError.CONFLICT, f"Duel je već {duel.status.value}.", duel_id)

            duel.status = DuelStatus.DECLINED
            duel.live_pair_key = None

            await self.session.commit()
            logger.info(f"Duel {duel_id} declined by {player_id}")

            return DuelResult(success=True, message="Izazov odbijen.", duel_id=duel_id)

    async def submit_action(self, duel_id: int, player_id: int, action_key: str) -> DuelResult:
        """Play one action for the player whose turn it is.

        Validation order: duel exists, duel active, caller owns the turn,
        action exists, wallet covers the cost, usage limit not reached.
        Nothing is mutated unless all checks pass.

        Args:
            duel_id: ID of the duel
            player_id: ID of the acting player
            action_key: Catalog key of the action

        Returns:
            DuelResult with the turn result (flavor text for the acting client)
        """
        async with self.locks.hold(duel_key(duel_id)):
            duel = await self._load_duel(duel_id, for_update=True)
            if duel is None:
                return DuelResult.fail(DuelError.NOT_FOUND, "Duel ne postoji.")

            if duel.status != DuelStatus.ACTIVE:
                return DuelResult.fail(DuelError.INVALID_STATE, f"Duel je {duel.status.value}.", duel_id)

            if player_id != duel.current_turn_user_id:
                return DuelResult.fail(DuelError.FORBIDDEN, "Nisi na potezu.", duel_id)

            action = get_action(action_key)
            if action is None:
                return DuelResult.fail(DuelError.UNKNOWN_ACTION, f"Nepoznata akcija: {action_key}", duel_id)

            rows = await self._load_combat_states(duel_id, for_update=True)
            opponent_id = duel.opponent_of(player_id)
            actor_row = rows[player_id]
            opponent_row = rows[opponent_id]

            if not is_affordable(action, actor_row.novcanik):
                return DuelResult.fail(
                    DuelError.INSUFFICIENT_FUNDS,
                    f"Nemaš dovoljno para: {action.name} košta {action.cost}, imaš {actor_row.novcanik}.",
                    duel_id,
                )

            if action.max_uses is not None and actor_row.action_uses.get(action.key, 0) >= action.max_uses:
                return DuelResult.fail(
                    DuelError.ACTION_EXHAUSTED,
                    f"{action.name} je već iskorišćen(a) {action.max_uses} put(a) u ovom duelu.",
                    duel_id,
                )

            names = self._display_names(duel)
            actor = self._to_combat_state(actor_row, names.get(player_id, ""))
            opponent = self._to_combat_state(opponent_row, names.get(opponent_id, ""))

            turn_number = duel.turn_number
            result = self.resolver.resolve(action, actor, opponent, turn_number)
            outcome = check_duel_over(actor, opponent, turn_number, duel.player1_id)

            self._write_back(actor_row, actor)
            self._write_back(opponent_row, opponent)
            self.turn_log.append(duel.id, turn_number, player_id, action.key, result.flavor_text)

            if outcome is not None:
                self._finish(duel, outcome.winner_id, outcome.reason)
                result.is_duel_over = True
                result.winner_id = outcome.winner_id
                result.finish_reason = outcome.reason
            else:
                duel.turn_number = turn_number + 1
                duel.current_turn_user_id = opponent_id

            await self.session.commit()

            if outcome is not None:
                logger.info(
                    f"Duel {duel_id} finished on turn {turn_number}: "
                    f"winner {outcome.winner_id} ({outcome.reason.value})"
                )
            else:
                logger.info(f"Duel {duel_id} turn {turn_number}: {player_id} played {action.key}")

            return DuelResult(
                success=True,
                message=result.flavor_text,
                duel_id=duel_id,
                turn_result=result,
            )

    async def surrender(self, duel_id: int, player_id: int) -> DuelResult:
        """Concede an active duel, regardless of whose turn it is."""
        async with self.locks.hold(duel_key(duel_id)):
            duel = await self._load_duel(duel_id, for_update=True)
            if duel is None:
                return DuelResult.fail(DuelError.NOT_FOUND, "Duel ne postoji.")

            if not duel.is_participant(player_id):
                return DuelResult.fail(DuelError.FORBIDDEN, "Nisi učesnik ovog duela.", duel_id)

            if duel.status != DuelStatus.ACTIVE:
                return DuelResult.fail(DuelError.INVALID_STATE, f"Duel je {duel.status.value}.", duel_id)

            winner_id = duel.opponent_of(player_id)
            names = self._display_names(duel)
            flavor_text = (
                f"{names.get(player_id, 'Igrač')} plaća račun i napušta kafanu. "
                f"{names.get(winner_id, 'Protivnik')} ostaje za stolom i odnosi pobedu."
            )
            self.turn_log.append(duel.id, duel.turn_number, player_id, SURRENDER_ACTION, flavor_text)
            self._finish(duel, winner_id, FinishReason.SURRENDER)

            await self.session.commit()
            logger.info(f"Duel {duel_id}: {player_id} surrendered, winner {winner_id}")

            return DuelResult(success=True, message=flavor_text, duel_id=duel_id)

    async def get_duel_state(
        self,
        duel_id: int,
        viewer_id: int | None = None,
        log_limit: int = DEFAULT_STATE_LOG_LIMIT,
    ) -> dict[str, Any] | None:
        """Get the committed state of a duel.

        Available actions are included only for the player on turn.

        Args:
            duel_id: ID of the duel
            viewer_id: Player asking for the state
            log_limit: How many recent log entries to include

        Returns:
            Dict with duel state, or None if not found
        """
        duel = await self._load_duel(duel_id)
        if duel is None:
            return None

        rows = await self._load_combat_states(duel_id)
        names = self._display_names(duel)
        recent = await self.turn_log.recent(duel_id, log_limit)

        players = []
        for pid, role in ((duel.player1_id, "challenger"), (duel.player2_id, "challenged")):
            row = rows.get(pid)
            players.append(
                {
                    "player_id": pid,
                    "display_name": names.get(pid, ""),
                    "role": role,
                    "combat_state": self._to_combat_state(row, names.get(pid, "")).to_dict() if row else None,
                }
            )

        is_viewer_turn = (
            viewer_id is not None
            and duel.status == DuelStatus.ACTIVE
            and viewer_id == duel.current_turn_user_id
        )
        available_actions = None
        if is_viewer_turn:
            viewer_row = rows[viewer_id]
            available_actions = annotate_catalog(viewer_row.novcanik, dict(viewer_row.action_uses))

        return {
            "duel_id": duel.id,
            "status": duel.status.value,
            "player1_id": duel.player1_id,
            "player2_id": duel.player2_id,
            "current_turn_user": duel.current_turn_user_id,
            "turn_number": duel.turn_number,
            "turn_cap": TURN_CAP,
            "winner_id": duel.winner_id if duel.status == DuelStatus.FINISHED else None,
            "finish_reason": duel.finish_reason.value if duel.finish_reason else None,
            "players": players,
            "log": [entry.to_dict() for entry in recent],
            "is_your_turn": is_viewer_turn,
            "available_actions": available_actions,
        }

    async def _load_duel(self, duel_id: int, for_update: bool = False) -> Duel | None:
        """Load a duel with both players, always from the database."""
        stmt = select(Duel).where(Duel.id == duel_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update(of=Duel)
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def _load_combat_states(self, duel_id: int, for_update: bool = False) -> dict[int, PlayerCombatState]:
        """Load combat states for a duel, keyed by player ID."""
        stmt = (
            select(PlayerCombatState)
            .where(PlayerCombatState.duel_id == duel_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return {s.player_id: s for s in result.scalars().all()}

    @staticmethod
    def _display_names(duel: Duel) -> dict[int, str]:
        return {
            duel.player1_id: duel.player1.display_name,
            duel.player2_id: duel.player2.display_name,
        }

    @staticmethod
    def _to_combat_state(row: PlayerCombatState, display_name: str) -> CombatState:
        return CombatState(
            player_id=row.player_id,
            alcometer=row.alcometer,
            respect=row.respect,
            stomak=row.stomak,
            novcanik=row.novcanik,
            pijani_foulovi=row.pijani_foulovi,
            action_uses=dict(row.action_uses),
            display_name=display_name,
        )

    @staticmethod
    def _write_back(row: PlayerCombatState, state: CombatState) -> None:
        row.alcometer = state.alcometer
        row.respect = state.respect
        row.stomak = state.stomak
        row.novcanik = state.novcanik
        row.pijani_foulovi = state.pijani_foulovi
        row.action_uses = dict(state.action_uses)

    @staticmethod
    def _finish(duel: Duel, winner_id: int, reason: FinishReason) -> None:
        """Move an active duel to finished. Winner is set exactly once."""
        duel.status = DuelStatus.FINISHED
        duel.winner_id = winner_id
        duel.finish_reason = reason
        duel.current_turn_user_id = None
        duel.finished_at = utcnow()
        duel.live_pair_key = None
