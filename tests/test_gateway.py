"""Integration tests for the polling gateway."""

from sqlalchemy.ext.asyncio import AsyncSession

from kafanski_duel.db.models import DuelError, Player
from kafanski_duel.services.duels import DuelService
from kafanski_duel.services.gateway import DuelGateway


async def open_duel(gateway: DuelGateway, challenger: Player, challenged: Player) -> int:
    created = await gateway.duels.create_challenge(challenger.id, challenged.id)
    await gateway.duels.accept_challenge(created.duel_id, challenged.id)
    return created.duel_id


class TestGetState:
    """Tests for DuelGateway.get_state."""

    async def test_unknown_duel(self, db_session: AsyncSession, rng, locks, player1: Player):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)

        result = await gateway.get_state(404, viewer_id=player1.id)

        assert not result.success
        assert result.error == DuelError.NOT_FOUND

    async def test_waiting_duel(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        """Before acceptance there are no combat states and no actions."""
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        created = await gateway.duels.create_challenge(player1.id, player2.id)

        state = (await gateway.get_state(created.duel_id, viewer_id=player1.id)).state

        assert state["status"] == "waiting"
        assert state["current_turn_user"] is None
        assert state["winner_id"] is None
        assert [p["combat_state"] for p in state["players"]] == [None, None]
        assert state["available_actions"] is None
        assert state["is_your_turn"] is False

    async def test_actions_only_for_player_on_turn(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player, player3: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        on_turn = (await gateway.get_state(duel_id, viewer_id=player1.id)).state
        waiting = (await gateway.get_state(duel_id, viewer_id=player2.id)).state
        spectator = (await gateway.get_state(duel_id, viewer_id=player3.id)).state
        anonymous = (await gateway.get_state(duel_id)).state

        assert on_turn["is_your_turn"] is True
        assert len(on_turn["available_actions"]) == 12
        assert all(a["affordable"] for a in on_turn["available_actions"])
        for view in (waiting, spectator, anonymous):
            assert view["is_your_turn"] is False
            assert view["available_actions"] is None
            assert view["players"] == on_turn["players"]

    async def test_state_shape(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        state = (await gateway.get_state(duel_id, viewer_id=player1.id)).state

        assert state["duel_id"] == duel_id
        assert state["status"] == "active"
        assert state["player1_id"] == player1.id
        assert state["player2_id"] == player2.id
        assert state["current_turn_user"] == player1.id
        assert state["turn_number"] == 1
        assert state["turn_cap"] == 10
        assert state["log"] == []

        challenger, challenged = state["players"]
        assert challenger["role"] == "challenger"
        assert challenger["display_name"] == "Pera"
        assert challenged["role"] == "challenged"
        assert challenged["combat_state"]["novcanik"] == 1000

    async def test_repeated_reads_are_stable(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        """Reading never re-rolls anything."""
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)
        await gateway.submit_action(duel_id, player1.id, "rakija")

        first = await gateway.get_state(duel_id, viewer_id=player2.id)
        second = await gateway.get_state(duel_id, viewer_id=player2.id)

        assert first.state == second.state

    async def test_affordability_annotation_tracks_wallet(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)
        await gateway.submit_action(duel_id, player1.id, "trubaci")
        await gateway.submit_action(duel_id, player2.id, "zdravica")
        await gateway.submit_action(duel_id, player1.id, "tura")

        await gateway.submit_action(duel_id, player2.id, "zdravica")
        state = (await gateway.get_state(duel_id, viewer_id=player1.id)).state
        actions = {a["key"]: a for a in state["available_actions"]}

        # 1000 - 500 - 400
        assert state["players"][0]["combat_state"]["novcanik"] == 100
        assert actions["pivo"]["affordable"] is True
        assert actions["rakija"]["affordable"] is False
        assert actions["trubaci"]["available"] is False


class TestSubmitThroughGateway:
    """Tests for DuelGateway.submit_action and surrender."""

    async def test_read_your_writes(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        """The acting client gets narration and the fresh state in one call."""
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        result = await gateway.submit_action(duel_id, player1.id, "zdravica")

        assert result.success
        assert result.message == result.turn_result.flavor_text
        assert result.state["turn_number"] == 2
        assert result.state["current_turn_user"] == player2.id
        assert result.state["is_your_turn"] is False
        assert [e["flavor_text"] for e in result.state["log"]] == [result.message]

    async def test_rejected_action_has_no_state(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        result = await gateway.submit_action(duel_id, player2.id, "zdravica")

        assert result.error == DuelError.FORBIDDEN
        assert result.state is None

    async def test_log_is_truncated_to_newest(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks, log_limit=2)
        duel_id = await open_duel(gateway, player1, player2)
        for actor in (player1, player2, player1):
            await gateway.submit_action(duel_id, actor.id, "pivo")

        state = (await gateway.get_state(duel_id, viewer_id=player2.id)).state

        assert [e["turn_number"] for e in state["log"]] == [2, 3]
        assert [e["user_id"] for e in state["log"]] == [player2.id, player1.id]

    async def test_surrender_returns_final_state(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        result = await gateway.surrender(duel_id, player2.id)

        assert result.success
        assert result.state["status"] == "finished"
        assert result.state["winner_id"] == player1.id
        assert result.state["finish_reason"] == "surrender"
        assert result.state["current_turn_user"] is None
        assert result.state["log"][-1]["action_type"] == "surrender"


class TestListActive:
    """Tests for DuelGateway.list_active."""

    async def test_list_active(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        duel_id = await open_duel(gateway, player1, player2)

        mine = await gateway.list_active(player1.id)
        theirs = await gateway.list_active(player2.id)

        assert [d.id for d in mine.waiting_on(player1.id)] == [duel_id]
        assert theirs.waiting_on(player2.id) == []
        assert [d.id for d in theirs.active] == [duel_id]

    async def test_history_limit(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        gateway = DuelGateway(db_session, rng=rng, locks=locks, history_limit=0)
        duel_id = await open_duel(gateway, player1, player2)
        await gateway.surrender(duel_id, player1.id)

        lobby = await gateway.list_active(player1.id)

        assert lobby.finished == []
        assert [p.id for p in lobby.opponents] == [player2.id]

    async def test_shares_service_with_lifecycle(self, db_session: AsyncSession, rng, locks):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)

        assert isinstance(gateway.duels, DuelService)
        assert gateway.duels.engine is gateway.engine


class TestGetHistory:
    """Tests for DuelGateway.get_history."""

    async def test_unknown_duel(self, db_session: AsyncSession, rng, locks):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)

        assert await gateway.get_history(404) is None

    async def test_finished_duel_history(self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player):
        gateway = DuelGateway(db_session, rng=rng, locks=locks, log_limit=1)
        duel_id = await open_duel(gateway, player1, player2)
        await gateway.submit_action(duel_id, player1.id, "zdravica")
        await gateway.surrender(duel_id, player2.id)

        log = await gateway.get_history(duel_id)

        # Full log, not the truncated state view
        assert [e.action_type for e in log.entries] == ["zdravica", "surrender"]
        assert "Mika se predaje." in log.format_readable()

    async def test_waiting_duel_has_empty_history(
        self, db_session: AsyncSession, rng, locks, player1: Player, player2: Player
    ):
        gateway = DuelGateway(db_session, rng=rng, locks=locks)
        created = await gateway.duels.create_challenge(player1.id, player2.id)

        log = await gateway.get_history(created.duel_id)

        assert log.duel_id == created.duel_id
        assert log.entries == []
