"""Action catalog - the static table of moves available in a duel.

The catalog is immutable. Every function here is a pure lookup or a pure
function of (action, player's wallet/usage), so it is safe to call from
views without touching the database.
"""

from dataclasses import dataclass
from typing import Any

from ..db.models.enums import ActionCategory, CombatStat, TargetType


@dataclass(frozen=True)
class StatEffect:
    """A stat change applied by an action.

    The rolled delta is ``amount + randint(-spread, spread)``.
    """

    stat: CombatStat
    amount: int
    target: TargetType = TargetType.SELF
    spread: int = 0


@dataclass(frozen=True)
class ActionDefinition:
    """A catalog entry."""

    key: str
    name: str
    category: ActionCategory
    cost: int
    effects: tuple[StatEffect, ...]
    flavor_templates: tuple[str, ...]
    max_uses: int | None = None  # None = freely repeatable

    @property
    def targets_opponent(self) -> bool:
        return any(e.target == TargetType.OPPONENT for e in self.effects)

    @property
    def ingests(self) -> bool:
        """Whether the action puts something in the stomach."""
        return any(
            e.stat == CombatStat.STOMAK and e.target == TargetType.SELF and e.amount > 0
            for e in self.effects
        )


def _self(stat: CombatStat, amount: int, spread: int = 0) -> StatEffect:
    return StatEffect(stat=stat, amount=amount, target=TargetType.SELF, spread=spread)


def _opponent(stat: CombatStat, amount: int, spread: int = 0) -> StatEffect:
    return StatEffect(stat=stat, amount=amount, target=TargetType.OPPONENT, spread=spread)


ALCO = CombatStat.ALCOMETER
RESPECT = CombatStat.RESPECT
STOMAK = CombatStat.STOMAK

_ACTIONS: tuple[ActionDefinition, ...] = (
    # Drinks
    ActionDefinition(
        key="rakija",
        name="Šljivovica",
        category=ActionCategory.PICE,
        cost=150,
        effects=(_self(ALCO, 20, 5), _self(STOMAK, 5), _self(RESPECT, 6, 2)),
        flavor_templates=(
            "{player} ispija ljutu šljivovicu na eks i lupa čašicom o sto.",
            "{player} naručuje duplu rakiju i gleda {opponent} pravo u oči.",
            "{player} nazdravlja celoj kafani i obara rakiju bez trepnuća.",
        ),
    ),
    ActionDefinition(
        key="pivo",
        name="Pivo",
        category=ActionCategory.PICE,
        cost=100,
        effects=(_self(ALCO, 10, 3), _self(STOMAK, 20), _self(RESPECT, 2)),
        flavor_templates=(
            "{player} otvara hladno pivo zubima.",
            "{player} ispija krigu piva dok {opponent} samo gleda.",
        ),
    ),
    ActionDefinition(
        key="vinjak",
        name="Vinjak",
        category=ActionCategory.PICE,
        cost=200,
        effects=(_self(ALCO, 25, 5), _self(RESPECT, 8, 3)),
        flavor_templates=(
            "{player} naručuje vinjak, sa stilom.",
            "{player} polako pijucka vinjak i priča o starim vremenima.",
        ),
    ),
    ActionDefinition(
        key="kisela_voda",
        name="Kisela voda",
        category=ActionCategory.PICE,
        cost=50,
        effects=(_self(ALCO, -15, 5), _self(STOMAK, 10), _self(RESPECT, -3)),
        flavor_templates=(
            "{player} traži kiselu vodu. Kafana utihne na trenutak.",
            "{player} se otrežnjava kiselom vodom, {opponent} se podsmeva.",
        ),
    ),
    ActionDefinition(
        key="tura",
        name="Tura za ceo sto",
        category=ActionCategory.PICE,
        cost=400,
        effects=(_self(RESPECT, 12, 4), _self(ALCO, 10), _opponent(ALCO, 15, 5)),
        flavor_templates=(
            "{player} časti turu za ceo sto, {opponent} ne sme da odbije.",
            "\"Konobar, turu za sve!\" viče {player}, a {opponent} mora da pije.",
        ),
    ),
    # Food
    ActionDefinition(
        key="burek",
        name="Burek",
        category=ActionCategory.HRANA,
        cost=120,
        effects=(_self(STOMAK, 30), _self(ALCO, -10, 3)),
        flavor_templates=(
            "{player} smazuje burek sa mesom i briše masne prste o stolnjak.",
            "{player} naručuje burek i jogurt da se malo povrati.",
        ),
    ),
    ActionDefinition(
        key="cevapi",
        name="Desetka ćevapa",
        category=ActionCategory.HRANA,
        cost=250,
        effects=(_self(STOMAK, 40), _self(ALCO, -15, 5), _self(RESPECT, 3)),
        flavor_templates=(
            "{player} jede desetku ćevapa sa lukom, bez pardona.",
            "{player} naručuje ćevape i nudi {opponent} samo luk.",
        ),
    ),
    ActionDefinition(
        key="kupus",
        name="Kiseli kupus",
        category=ActionCategory.HRANA,
        cost=60,
        effects=(_self(STOMAK, 10), _self(ALCO, -20, 5), _self(RESPECT, -2)),
        flavor_templates=(
            "{player} pije rasol iz tegle kiselog kupusa.",
            "{player} gricka kiseli kupus dok soba ne prestane da se vrti.",
        ),
    ),
    # Specials
    ActionDefinition(
        key="zdravica",
        name="Zdravica",
        category=ActionCategory.SPECIJAL,
        cost=0,
        effects=(_opponent(RESPECT, -10, 4), _self(RESPECT, 3)),
        flavor_templates=(
            "{player} drži zdravicu u kojoj suptilno ponižava {opponent}.",
            "{player} ustaje i nazdravlja \"svima osim {opponent}\".",
            "{player} drži govor o poštenju i pogleda ka {opponent}.",
        ),
    ),
    ActionDefinition(
        key="pesma",
        name="Pesma za stolom",
        category=ActionCategory.SPECIJAL,
        cost=0,
        effects=(_self(RESPECT, 8, 4), _self(ALCO, 5)),
        flavor_templates=(
            "{player} zapeva staru kafansku, cela kafana prihvata refren.",
            "{player} peva iz sveg glasa, {opponent} ne zna tekst.",
        ),
        max_uses=3,
    ),
    ActionDefinition(
        key="razbijanje_casa",
        name="Razbijanje čaša",
        category=ActionCategory.SPECIJAL,
        cost=100,
        effects=(_opponent(RESPECT, -15, 5), _self(ALCO, 5)),
        flavor_templates=(
            "{player} razbija čašu o pod ispred {opponent}. Opa!",
            "{player} lomi čaše jednu za drugom, {opponent} se skuplja u ćošku.",
        ),
        max_uses=2,
    ),
    ActionDefinition(
        key="trubaci",
        name="Trubači",
        category=ActionCategory.SPECIJAL,
        cost=500,
        effects=(_self(RESPECT, 20, 5), _opponent(RESPECT, -5, 2)),
        flavor_templates=(
            "{player} zakači novčanicu trubaču na čelo, a truba svira samo za taj sto.",
            "{player} dovodi trubače do stola, {opponent} više ne čuje sopstvene misli.",
        ),
        max_uses=1,
    ),
)

ACTION_CATALOG: dict[str, ActionDefinition] = {action.key: action for action in _ACTIONS}


def get_action(key: str) -> ActionDefinition | None:
    """Look up an action by key."""
    return ACTION_CATALOG.get(key)


def get_actions_by_category(category: ActionCategory) -> list[ActionDefinition]:
    """Get actions in one category, in catalog order."""
    return [a for a in _ACTIONS if a.category == category]


def get_catalog_by_category() -> dict[ActionCategory, list[ActionDefinition]]:
    """Partition the whole catalog by category."""
    return {category: get_actions_by_category(category) for category in ActionCategory}


def is_affordable(action: ActionDefinition, novcanik: int) -> bool:
    """Whether a wallet covers the action's cost."""
    return novcanik >= action.cost


def uses_left(action: ActionDefinition, times_used: int) -> int | None:
    """Remaining uses for a limited action, None if unlimited."""
    if action.max_uses is None:
        return None
    return max(0, action.max_uses - times_used)


def annotate_catalog(novcanik: int, action_uses: dict[str, int] | None = None) -> list[dict[str, Any]]:
    """Catalog entries annotated for one player.

    ``affordable`` is advisory only; the engine re-checks on submit.
    """
    action_uses = action_uses or {}
    annotated = []
    for action in _ACTIONS:
        remaining = uses_left(action, action_uses.get(action.key, 0))
        annotated.append(
            {
                "key": action.key,
                "name": action.name,
                "category": action.category.value,
                "cost": action.cost,
                "affordable": is_affordable(action, novcanik),
                "uses_left": remaining,
                "available": remaining is None or remaining > 0,
            }
        )
    return annotated
