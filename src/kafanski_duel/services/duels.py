"""Duel service - challenge lifecycle and the lobby view."""

import logging
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.duels import Duel
from ..db.models.enums import DuelError, DuelStatus
from ..db.models.players import Player
from ..engine.duel import DuelEngine, DuelResult
from ..engine.locks import DuelLockRegistry, duel_locks, pair_key
from .players import PlayerService

logger = logging.getLogger(__name__)

DEFAULT_LOBBY_HISTORY_LIMIT = 5

# Statuses that hold the pair slot
LIVE_STATUSES = (DuelStatus.WAITING, DuelStatus.ACTIVE)


@dataclass
class Lobby:
    """Everything a player sees on the duel lobby screen."""

    incoming: list[Duel] = field(default_factory=list)  # Caller is player2, waiting
    outgoing: list[Duel] = field(default_factory=list)  # Caller is player1, waiting
    active: list[Duel] = field(default_factory=list)
    finished: list[Duel] = field(default_factory=list)  # Most recent first
    opponents: list[Player] = field(default_factory=list)

    def waiting_on(self, player_id: int) -> list[Duel]:
        """Active duels where it is ``player_id``'s turn."""
        return [d for d in self.active if d.current_turn_user_id == player_id]


class DuelService:
    """Service for the challenge lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        engine: DuelEngine | None = None,
        locks: DuelLockRegistry | None = None,
    ) -> None:
        self.session = session
        self.locks = locks or duel_locks
        self.engine = engine or DuelEngine(session, locks=self.locks)
        self.players = PlayerService(session)

    async def create_challenge(self, challenger_id: int, challenged_id: int) -> DuelResult:
        """Create a new duel challenge.

        At most one waiting/active duel may exist per pair of players,
        regardless of who challenged whom.

        Args:
            challenger_id: Player ID of the challenger
            challenged_id: Player ID of the challenged player

        Returns:
            DuelResult with the created duel
        """
        if challenger_id == challenged_id:
            return DuelResult.fail(DuelError.FORBIDDEN, "Ne možeš da izazoveš samog sebe!")

        async with self.locks.hold(pair_key(challenger_id, challenged_id)):
            opponent = await self.players.get_player_by_id(challenged_id)
            if opponent is None:
                return DuelResult.fail(DuelError.NOT_FOUND, "Taj igrač ne postoji.")

            existing = await self._get_live_duel_for_pair(challenger_id, challenged_id)
            if existing:
                return DuelResult.fail(
                    DuelError.CONFLICT,
                    "Već postoji otvoren duel između vas dvoje!",
                    existing.id,
                )

            return await self.engine.create_duel(challenger_id, challenged_id)

    async def accept_challenge(self, duel_id: int, player_id: int) -> DuelResult:
        """Accept a duel challenge.

        Args:
            duel_id: ID of the duel to accept
            player_id: ID of the player accepting (must be player2)

        Returns:
            DuelResult indicating success or failure
        """
        return await self.engine.accept_duel(duel_id, player_id)

    async def decline_challenge(self, duel_id: int, player_id: int) -> DuelResult:
        """Decline a duel challenge.

        Args:
            duel_id: ID of the duel to decline
            player_id: ID of the player declining (must be player2)

        Returns:
            DuelResult indicating success or failure
        """
        return await self.engine.decline_duel(duel_id, player_id)

    async def get_lobby(self, player_id: int, history_limit: int = DEFAULT_LOBBY_HISTORY_LIMIT) -> Lobby:
        """Partition the player's duels for the lobby screen."""
        stmt = (
            select(Duel)
            .where(
                or_(Duel.player1_id == player_id, Duel.player2_id == player_id),
                Duel.status.in_(LIVE_STATUSES),
            )
            .order_by(Duel.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        live = list(result.unique().scalars().all())

        lobby = Lobby()
        for duel in live:
            if duel.status == DuelStatus.ACTIVE:
                lobby.active.append(duel)
            elif duel.player2_id == player_id:
                lobby.incoming.append(duel)
            else:
                lobby.outgoing.append(duel)

        lobby.finished = await self.get_finished_duels(player_id, history_limit)
        lobby.opponents = await self.players.list_opponents(player_id)
        return lobby

    async def get_finished_duels(self, player_id: int, limit: int = DEFAULT_LOBBY_HISTORY_LIMIT) -> list[Duel]:
        """Most recently finished duels of a player."""
        if limit <= 0:
            return []
        stmt = (
            select(Duel)
            .where(
                or_(Duel.player1_id == player_id, Duel.player2_id == player_id),
                Duel.status == DuelStatus.FINISHED,
            )
            .order_by(Duel.finished_at.desc(), Duel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def get_duel(self, duel_id: int) -> Duel | None:
        """Get a duel with both players loaded."""
        stmt = select(Duel).where(Duel.id == duel_id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def _get_live_duel_for_pair(self, player_a_id: int, player_b_id: int) -> Duel | None:
        """Find a waiting/active duel between two players, in either direction."""
        stmt = select(Duel).where(
            or_(
                (Duel.player1_id == player_a_id) & (Duel.player2_id == player_b_id),
                (Duel.player1_id == player_b_id) & (Duel.player2_id == player_a_id),
            ),
            Duel.status.in_(LIVE_STATUSES),
        )
        result = await self.session.execute(stmt)
        return result.unique().scalars().first()
