"""Duel gateway - the polling-friendly facade clients talk to.

Clients never receive pushed updates. After each action they re-fetch the
state; the acting client additionally gets the flavor text of its action
in the response.
"""

import logging
import random

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.enums import DuelError
from ..engine.duel import DEFAULT_STATE_LOG_LIMIT, DuelEngine, DuelResult
from ..engine.locks import DuelLockRegistry, duel_locks
from ..engine.logging import CombatLog
from .duels import DEFAULT_LOBBY_HISTORY_LIMIT, DuelService, Lobby

logger = logging.getLogger(__name__)


class DuelGateway:
    """Entry point for state queries and in-duel actions."""

    def __init__(
        self,
        session: AsyncSession,
        rng: random.Random | None = None,
        locks: DuelLockRegistry | None = None,
        log_limit: int = DEFAULT_STATE_LOG_LIMIT,
        history_limit: int = DEFAULT_LOBBY_HISTORY_LIMIT,
    ) -> None:
        self.session = session
        self.log_limit = log_limit
        self.history_limit = history_limit
        self.engine = DuelEngine(session, rng=rng, locks=locks or duel_locks)
        self.duels = DuelService(session, engine=self.engine, locks=self.engine.locks)

    async def get_state(self, duel_id: int, viewer_id: int | None = None) -> DuelResult:
        """Committed state of a duel as seen by ``viewer_id``.

        Any caller may look; available actions are only listed for the
        player whose turn it is.
        """
        state = await self.engine.get_duel_state(duel_id, viewer_id=viewer_id, log_limit=self.log_limit)
        if state is None:
            return DuelResult.fail(DuelError.NOT_FOUND, "Duel ne postoji.")
        return DuelResult(success=True, message="", duel_id=duel_id, state=state)

    async def list_active(self, player_id: int) -> Lobby:
        """The player's lobby: pending challenges, live and recent duels."""
        return await self.duels.get_lobby(player_id, history_limit=self.history_limit)

    async def submit_action(self, duel_id: int, player_id: int, action_key: str) -> DuelResult:
        """Play an action and return the fresh state along with the flavor text."""
        result = await self.engine.submit_action(duel_id, player_id, action_key)
        if result.success:
            result.state = await self.engine.get_duel_state(duel_id, viewer_id=player_id, log_limit=self.log_limit)
        else:
            logger.debug(f"Action {action_key} by {player_id} in duel {duel_id} rejected: {result.error}")
        return result

    async def surrender(self, duel_id: int, player_id: int) -> DuelResult:
        """Concede a duel and return the final state."""
        result = await self.engine.surrender(duel_id, player_id)
        if result.success:
            result.state = await self.engine.get_duel_state(duel_id, viewer_id=player_id, log_limit=self.log_limit)
        return result

    async def get_history(self, duel_id: int) -> CombatLog | None:
        """Full turn log of a duel, or None if the duel does not exist."""
        if await self.duels.get_duel(duel_id) is None:
            return None
        return await self.engine.turn_log.history(duel_id)
