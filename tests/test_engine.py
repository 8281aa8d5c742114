"""Tests for the duel engine building blocks."""

import pytest

from kafanski_duel.db.models.enums import ActionCategory, CombatStat, FinishReason, TargetType
from kafanski_duel.engine.catalog import ACTION_CATALOG, ActionDefinition, StatEffect, get_action
from kafanski_duel.engine.resolver import ActionResolver, foul_chance
from kafanski_duel.engine.rules import check_duel_over, rank_on_points
from kafanski_duel.engine.types import STAT_BOUNDS, TURN_CAP, CombatState, StatBounds, StatChange, TurnResult


def make_state(player_id: int = 1, name: str = "", **overrides) -> CombatState:
    state = CombatState.starting(player_id, name)
    for key, value in overrides.items():
        setattr(state, key, value)
    return state


class TestCombatState:
    """Tests for CombatState data class."""

    def test_starting_values(self):
        """Test documented starting stats."""
        state = CombatState.starting(7, "Pera")
        assert state.player_id == 7
        assert state.alcometer == 0
        assert state.respect == 50
        assert state.stomak == 20
        assert state.novcanik == 1000
        assert state.pijani_foulovi == 0
        assert state.action_uses == {}

    def test_apply_delta_clamps_and_reports_actual_change(self):
        """Deltas are clamped and the applied amount is returned."""
        state = make_state(respect=95)
        assert state.apply_delta(CombatStat.RESPECT, 10) == 5
        assert state.respect == 100

        assert state.apply_delta(CombatStat.RESPECT, -150) == -100
        assert state.respect == 0

    def test_wallet_has_no_upper_bound(self):
        """novcanik only has a floor."""
        state = make_state()
        state.apply_delta(CombatStat.NOVCANIK, 10_000)
        assert state.novcanik == 11_000

    def test_clamp_all(self):
        """Out-of-range values are forced back into bounds."""
        state = make_state(alcometer=200, respect=-5, stomak=130, pijani_foulovi=9)
        state.clamp_all()
        assert state.alcometer == 150
        assert state.respect == 0
        assert state.stomak == 100
        assert state.pijani_foulovi == 3

    def test_loss_predicates(self):
        """Test disgrace and foul-out checks."""
        assert make_state(respect=0).is_disgraced()
        assert not make_state(respect=1).is_disgraced()
        assert make_state(pijani_foulovi=3).is_fouled_out()
        assert not make_state(pijani_foulovi=2).is_fouled_out()

    def test_record_use(self):
        """Usage counts per action key."""
        state = make_state()
        state.record_use("pesma")
        state.record_use("pesma")
        assert state.uses_of("pesma") == 2
        assert state.uses_of("trubaci") == 0

    def test_stat_bounds_clamp(self):
        """Test StatBounds directly."""
        assert StatBounds(0, 10).clamp(11) == 10
        assert StatBounds(0, None).clamp(-1) == 0
        assert StatBounds(0, None).clamp(999) == 999

    def test_turn_result_skips_noop_changes(self):
        """Zero changes are not recorded."""
        result = TurnResult(turn_number=1, player_id=1, action_key="pivo", flavor_text="")
        result.add_change(StatChange(1, CombatStat.RESPECT, 0))
        result.add_change(StatChange(1, CombatStat.RESPECT, 2))
        assert len(result.changes) == 1


class TestFoulChance:
    """Tests for the drunk foul probability."""

    def test_sober_never_fouls(self):
        assert foul_chance(0) == 0.0
        assert foul_chance(99) == 0.0

    def test_threshold_and_growth(self):
        assert foul_chance(100) == pytest.approx(0.25)
        assert foul_chance(125) == pytest.approx(0.5)

    def test_capped(self):
        assert foul_chance(150) == pytest.approx(0.75)


class TestActionResolver:
    """Tests for ActionResolver."""

    def test_zdravica(self, rng):
        """Free special lowers the opponent's respect and raises the actor's."""
        resolver = ActionResolver(rng)
        actor = make_state(1, "Pera")
        opponent = make_state(2, "Mika")

        result = resolver.resolve(get_action("zdravica"), actor, opponent, turn_number=1)

        assert actor.novcanik == 1000
        assert actor.respect == 53
        assert opponent.respect == 40
        assert result.flavor_text.startswith("Pera drži zdravicu")
        assert "Mika" in result.flavor_text
        assert not result.fouled
        assert not result.overflowed

    def test_cost_is_deducted(self, rng):
        """Cost comes out of the wallet."""
        resolver = ActionResolver(rng)
        actor = make_state(1)
        resolver.resolve(get_action("rakija"), actor, make_state(2), turn_number=1)

        assert actor.novcanik == 850
        assert actor.alcometer == 20
        assert actor.stomak == 25
        assert actor.respect == 56

    def test_changes_are_reported(self, rng):
        """TurnResult lists every applied change."""
        resolver = ActionResolver(rng)
        result = resolver.resolve(get_action("burek"), make_state(1, alcometer=30), make_state(2), turn_number=3)

        changes = {(c.player_id, c.stat): c.value for c in result.changes}
        assert changes[(1, CombatStat.NOVCANIK)] == -120
        assert changes[(1, CombatStat.STOMAK)] == 30
        assert changes[(1, CombatStat.ALCOMETER)] == -10
        assert result.turn_number == 3
        assert result.action_key == "burek"

    def test_spread_uses_injected_rng(self):
        """The rolled delta is amount + randint(-spread, spread)."""

        class HighRoll:
            def randint(self, a, b):
                return b

            def choice(self, seq):
                return seq[0]

            def random(self):
                return 0.99

        resolver = ActionResolver(HighRoll())
        opponent = make_state(2)
        resolver.resolve(get_action("zdravica"), make_state(1), opponent, turn_number=1)

        # -10 + 4
        assert opponent.respect == 44

    def test_stomach_overflow_penalty(self, rng):
        """Eating past a full stomach clamps it and costs respect."""
        resolver = ActionResolver(rng)
        actor = make_state(1, stomak=90)

        result = resolver.resolve(get_action("burek"), actor, make_state(2), turn_number=1)

        assert result.overflowed
        assert actor.stomak == 100
        assert actor.respect == 35

    def test_exactly_full_is_not_overflow(self, rng):
        """Filling the stomak to exactly its max is allowed."""
        resolver = ActionResolver(rng)
        actor = make_state(1, stomak=70)

        result = resolver.resolve(get_action("burek"), actor, make_state(2), turn_number=1)

        assert not result.overflowed
        assert actor.stomak == 100
        assert actor.respect == 50

    def test_feeding_opponent_is_not_overflow(self, rng):
        """Filling the opponent's stomak past full never penalizes the actor."""
        force_feed = ActionDefinition(
            key="tura_za_sto",
            name="Tura za sto",
            category=ActionCategory.HRANA,
            cost=0,
            effects=(StatEffect(CombatStat.STOMAK, 30, target=TargetType.OPPONENT),),
            flavor_templates=("{player} časti {opponent} sarmom.",),
        )
        resolver = ActionResolver(rng)
        actor = make_state(1, "Pera")
        opponent = make_state(2, "Mika", stomak=90)

        result = resolver.resolve(force_feed, actor, opponent, turn_number=1)

        assert not result.overflowed
        assert opponent.stomak == 100
        assert actor.respect == 50
        assert opponent.respect == 50

    def test_drunk_foul(self, foul_rng):
        """Drinking past the threshold can cause a foul."""
        resolver = ActionResolver(foul_rng)
        actor = make_state(1, "Pera", alcometer=100)

        result = resolver.resolve(get_action("rakija"), actor, make_state(2, "Mika"), turn_number=5)

        assert result.fouled
        assert actor.pijani_foulovi == 1
        assert actor.alcometer == 120
        # +6 from the drink, -10 for the foul
        assert actor.respect == 46
        assert "Pijani faul" in result.flavor_text

    def test_no_foul_when_roll_misses(self, rng):
        """A high roll never fouls."""
        resolver = ActionResolver(rng)
        actor = make_state(1, alcometer=150)

        result = resolver.resolve(get_action("rakija"), actor, make_state(2), turn_number=1)

        assert not result.fouled
        assert actor.pijani_foulovi == 0
        assert actor.alcometer == 150

    def test_sober_actor_never_rolls(self, foul_rng):
        """No foul roll below the drunk threshold."""
        resolver = ActionResolver(foul_rng)
        actor = make_state(1, alcometer=50)

        result = resolver.resolve(get_action("pivo"), actor, make_state(2), turn_number=1)

        assert not result.fouled

    def test_limited_action_use_is_recorded(self, rng):
        """Usage counters only track limited actions."""
        resolver = ActionResolver(rng)
        actor = make_state(1)

        resolver.resolve(get_action("pesma"), actor, make_state(2), turn_number=1)
        resolver.resolve(get_action("zdravica"), actor, make_state(2), turn_number=3)

        assert actor.action_uses == {"pesma": 1}

    @pytest.mark.parametrize("key", sorted(ACTION_CATALOG))
    def test_stats_stay_in_bounds_at_the_edges(self, key, foul_rng):
        """Repeated application at the boundaries never leaves the bounds."""
        resolver = ActionResolver(foul_rng)
        action = get_action(key)
        for extreme in ("low", "high"):
            if extreme == "low":
                actor = make_state(1, alcometer=0, respect=1, stomak=0, novcanik=100_000)
                opponent = make_state(2, alcometer=0, respect=0, stomak=0)
            else:
                actor = make_state(1, alcometer=150, respect=100, stomak=100, novcanik=100_000, pijani_foulovi=3)
                opponent = make_state(2, alcometer=150, respect=100, stomak=100)

            for turn in range(1, 4):
                resolver.resolve(action, actor, opponent, turn)
                for state in (actor, opponent):
                    for stat, bounds in STAT_BOUNDS.items():
                        assert bounds.clamp(state.get(stat)) == state.get(stat)


class TestDuelRules:
    """Tests for loss conditions and the turn-cap comparator."""

    def test_no_outcome_mid_duel(self):
        assert check_duel_over(make_state(1), make_state(2), turn_number=3, challenger_id=1) is None

    def test_opponent_disgraced(self):
        """Opponent at the respect floor loses."""
        outcome = check_duel_over(make_state(1), make_state(2, respect=0), 4, challenger_id=1)
        assert outcome.winner_id == 1
        assert outcome.loser_id == 2
        assert outcome.reason == FinishReason.RESPECT

    def test_actor_checked_first(self):
        """When both hit the floor the acting player loses."""
        outcome = check_duel_over(make_state(1, respect=0), make_state(2, respect=0), 4, challenger_id=2)
        assert outcome.loser_id == 1

    def test_respect_before_fouls(self):
        """Respect floor outranks the foul threshold."""
        actor = make_state(1, pijani_foulovi=3)
        opponent = make_state(2, respect=0)
        outcome = check_duel_over(actor, opponent, 2, challenger_id=1)
        assert outcome.loser_id == 2
        assert outcome.reason == FinishReason.RESPECT

    def test_fouled_out(self):
        outcome = check_duel_over(make_state(1, pijani_foulovi=3), make_state(2), 6, challenger_id=1)
        assert outcome.winner_id == 2
        assert outcome.reason == FinishReason.FOULS

    def test_loss_condition_beats_turn_cap(self):
        """A real loss on the last turn is reported as such."""
        outcome = check_duel_over(make_state(1), make_state(2, respect=0), TURN_CAP, challenger_id=1)
        assert outcome.reason == FinishReason.RESPECT

    def test_turn_cap_higher_respect_wins(self):
        outcome = check_duel_over(make_state(1, respect=30), make_state(2, respect=31), TURN_CAP, challenger_id=1)
        assert outcome.winner_id == 2
        assert outcome.reason == FinishReason.TURN_CAP

    def test_turn_cap_fewer_fouls_wins(self):
        actor = make_state(1, respect=30, pijani_foulovi=2)
        opponent = make_state(2, respect=30, pijani_foulovi=1)
        outcome = check_duel_over(actor, opponent, TURN_CAP, challenger_id=1)
        assert outcome.winner_id == 2

    def test_turn_cap_full_tie_goes_to_challenger(self):
        first = make_state(5, respect=30)
        second = make_state(9, respect=30)
        assert rank_on_points(first, second, challenger_id=9)[0].player_id == 9
        assert rank_on_points(second, first, challenger_id=9)[0].player_id == 9
        assert rank_on_points(first, second, challenger_id=5)[0].player_id == 5
