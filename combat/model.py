from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

MAX_ROUNDS = 200
MIN_TEAM_SIZE = 1
MAX_TEAM_SIZE = 6


class Element(Enum):
    """Elemental affinity of droids and maps"""
    EARTH = "earth"
    FIRE = "fire"
    WATER = "water"
    WIND = "wind"

    @classmethod
    def parse(cls, value: str) -> "Element":
        return cls(value.strip().lower())


class DroidKind(Enum):
    """The closed set of droid kinds, one special ability each"""
    EARTH_HAMMER = "EarthHammer"
    EARTH_BOER = "EarthBoer"
    FIRE_BURNING = "FireBurning"
    FIRE_FLASH = "FireFlash"
    WATER_STORM = "WaterStorm"
    WATER_SUBMARINE = "WaterSubmarine"
    WIND_FLYING = "WindFlying"
    WIND_SHADOW = "WindShadow"


class Mode(Enum):
    DUEL = "duel"
    TEAM = "team"


class ActionKind(Enum):
    """Actions a droid can take on its turn"""
    BASIC_ATTACK = "basic_attack"
    SPECIAL_ABILITY = "special_ability"
    REPOSITION = "reposition"
    ABORT = "abort"

    @classmethod
    def parse(cls, value: Any) -> Optional["ActionKind"]:
        """Resolve a selector response; None means it is not a known action."""
        if isinstance(value, ActionKind):
            return value
        # bool is an int subclass but never a menu code
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return _MENU_CODES.get(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return _MENU_CODES.get(int(text))
            for kind in cls:
                if kind.value == text:
                    return kind
        return None


# Numeric codes of the classic text menu
_MENU_CODES = {
    0: ActionKind.ABORT,
    1: ActionKind.BASIC_ATTACK,
    2: ActionKind.SPECIAL_ABILITY,
    3: ActionKind.REPOSITION,
}


class Phase(Enum):
    """Battle state machine phases"""
    SETUP_COMPLETE = "setup_complete"
    ROUND_IN_PROGRESS = "round_in_progress"
    RESOLVED = "resolved"


class Result(Enum):
    SIDE_A_WINS = "side_a_wins"
    SIDE_B_WINS = "side_b_wins"
    DRAW_BY_ANNIHILATION = "draw_by_annihilation"
    DRAW_BY_ROUND_LIMIT = "draw_by_round_limit"
    ABORTED_BY_ACTION = "aborted_by_action"


@dataclass(frozen=True)
class DroidTemplate:
    """Template defining the base stats of a droid kind"""
    kind: DroidKind
    name: str
    max_hp: int
    move_speed: int
    attack_range: int
    attack_power: int
    element: Element
    ability: str
    description: str


# Catalog order is the classic menu index order (0..7)
DROID_TEMPLATES: Dict[DroidKind, DroidTemplate] = {
    DroidKind.EARTH_HAMMER: DroidTemplate(
        kind=DroidKind.EARTH_HAMMER,
        name="HammerDroid",
        max_hp=150,
        move_speed=2,
        attack_range=1,
        attack_power=50,
        element=Element.EARTH,
        ability="Earthquake",
        description="Hits every non-wind droid on the field, allies included",
    ),
    DroidKind.EARTH_BOER: DroidTemplate(
        kind=DroidKind.EARTH_BOER,
        name="BoerDroid",
        max_hp=200,
        move_speed=1,
        attack_range=1,
        attack_power=70,
        element=Element.EARTH,
        ability="Tunnel",
        description="Burrows and resurfaces at a random position 0..9",
    ),
    DroidKind.FIRE_BURNING: DroidTemplate(
        kind=DroidKind.FIRE_BURNING,
        name="BurningDroid",
        max_hp=100,
        move_speed=2,
        attack_range=2,
        attack_power=75,
        element=Element.FIRE,
        ability="Flamethrower",
        description="Attacks every non-fire enemy within range",
    ),
    DroidKind.FIRE_FLASH: DroidTemplate(
        kind=DroidKind.FIRE_FLASH,
        name="FlashDroid",
        max_hp=75,
        move_speed=1,
        attack_range=2,
        attack_power=100,
        element=Element.FIRE,
        ability="Eruption",
        description="Erupts at a random position 0..9, hitting everyone standing there",
    ),
    DroidKind.WATER_STORM: DroidTemplate(
        kind=DroidKind.WATER_STORM,
        name="StormDroid",
        max_hp=125,
        move_speed=2,
        attack_range=2,
        attack_power=70,
        element=Element.WATER,
        ability="Heal",
        description="Fully restores the first damaged ally",
    ),
    DroidKind.WATER_SUBMARINE: DroidTemplate(
        kind=DroidKind.WATER_SUBMARINE,
        name="SubmarineDroid",
        max_hp=175,
        move_speed=1,
        attack_range=2,
        attack_power=80,
        element=Element.WATER,
        ability="Tidal reposition",
        description="Surfaces two cells behind a random enemy",
    ),
    DroidKind.WIND_FLYING: DroidTemplate(
        kind=DroidKind.WIND_FLYING,
        name="FlyingDroid",
        max_hp=105,
        move_speed=2,
        attack_range=3,
        attack_power=50,
        element=Element.WIND,
        ability="Bombing run",
        description="Flies three cells toward the centre, bombing each cell it crosses",
    ),
    DroidKind.WIND_SHADOW: DroidTemplate(
        kind=DroidKind.WIND_SHADOW,
        name="ShadowDroid",
        max_hp=105,
        move_speed=3,
        attack_range=2,
        attack_power=60,
        element=Element.WIND,
        ability="Blind",
        description="Cuts the attack range of every enemy to 1",
    ),
}

CATALOG: List[DroidKind] = list(DROID_TEMPLATES)


def droid_kind(value: Union[DroidKind, int, str]) -> DroidKind:
    """Look up a droid kind by enum, catalog index or name (kind or display name)."""
    if isinstance(value, DroidKind):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(CATALOG):
            return CATALOG[value]
        raise KeyError(f"droid index {value} outside 0..{len(CATALOG) - 1}")
    if isinstance(value, str):
        text = value.strip().lower()
        for kind, template in DROID_TEMPLATES.items():
            if text in (kind.value.lower(), kind.name.lower(), template.name.lower()):
                return kind
    raise KeyError(f"unknown droid kind: {value!r}")


@dataclass(frozen=True)
class MapBonus:
    """Elemental environment granting a one-time bonus to matching droids"""
    name: str
    element: Element
    bonus: int
    max_position: int
    min_position: int = 0


# Selection order of the random map draw
MAPS: Dict[str, MapBonus] = {
    "CAVE": MapBonus(name="Cave", element=Element.EARTH, bonus=50, max_position=9),
    "OCEAN": MapBonus(name="Ocean", element=Element.WATER, bonus=1, max_position=12),
    "SKY": MapBonus(name="Sky", element=Element.WIND, bonus=1, max_position=15),
    "VOLCANO": MapBonus(name="Volcano", element=Element.FIRE, bonus=25, max_position=9),
}


@dataclass(frozen=True)
class Arena:
    """Closed integer interval of valid positions"""
    min_position: int = 0
    max_position: int = 9

    @property
    def width(self) -> int:
        return self.max_position - self.min_position

    @property
    def midpoint(self) -> int:
        return (self.min_position + self.max_position) // 2

    def clamp(self, position: int) -> int:
        return max(self.min_position, min(self.max_position, position))

    def contains(self, position: int) -> bool:
        return self.min_position <= position <= self.max_position

    @classmethod
    def for_map(cls, battle_map: MapBonus) -> "Arena":
        return cls(min_position=battle_map.min_position, max_position=battle_map.max_position)


@dataclass
class Droid:
    id: str
    kind: DroidKind
    name: str
    element: Element
    max_hp: int
    hp: int
    move_speed: int
    attack_range: int
    attack_power: int
    position: int = 0
    bonus_applied: bool = False

    @property
    def alive(self) -> bool:
        return self.hp > 0

    def get_template(self) -> DroidTemplate:
        """Get the DroidTemplate this droid was built from"""
        return DROID_TEMPLATES[self.kind]

    @classmethod
    def from_template(cls, droid_id: str, kind: DroidKind, position: int = 0) -> "Droid":
        t = DROID_TEMPLATES[kind]
        return cls(id=droid_id, kind=kind, name=t.name, element=t.element,
                   max_hp=t.max_hp, hp=t.max_hp, move_speed=t.move_speed,
                   attack_range=t.attack_range, attack_power=t.attack_power,
                   position=position)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "element": self.element.value,
            "hp": self.hp,
            "max_hp": self.max_hp,
            "move_speed": self.move_speed,
            "attack_range": self.attack_range,
            "attack_power": self.attack_power,
            "position": self.position,
            "alive": self.alive,
        }


Team = List[Droid]


@dataclass(frozen=True)
class BattleConfig:
    """Everything fixed for the lifetime of one battle"""
    mode: Mode
    battle_map: MapBonus
    arena: Arena
    round_limit: int = MAX_ROUNDS

    @classmethod
    def for_map(cls, mode: Mode, battle_map: MapBonus, round_limit: int = MAX_ROUNDS) -> "BattleConfig":
        return cls(mode=mode, battle_map=battle_map, arena=Arena.for_map(battle_map),
                   round_limit=round_limit)


@dataclass
class TargetResult:
    """Effect of one action on one droid"""
    target_id: str
    effect: str  # hit, miss, damage, heal, noop, move, teleport, debuff
    amount: int = 0
    hp: Optional[int] = None
    position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"target_id": self.target_id, "effect": self.effect, "amount": self.amount,
                "hp": self.hp, "position": self.position}


@dataclass
class TurnRecord:
    round: int
    actor_id: str
    action: str
    results: List[TargetResult] = field(default_factory=list)
    anomaly: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round,
            "actor_id": self.actor_id,
            "action": self.action,
            "results": [r.to_dict() for r in self.results],
            "anomaly": self.anomaly,
        }


@dataclass
class BattleOutcome:
    mode: Mode
    map_name: str
    rounds: int
    result: Result
    side_a: List[Dict[str, Any]]
    side_b: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "map": self.map_name,
            "rounds": self.rounds,
            "result": self.result.value,
            "side_a": self.side_a,
            "side_b": self.side_b,
        }


@dataclass
class Event:
    kind: str
    round: int
    data: Dict


@dataclass
class State:
    config: BattleConfig
    side_a: Team
    side_b: Team
    round: int = 1
    phase: Phase = Phase.SETUP_COMPLETE
    result: Optional[Result] = None
    battle_id: str = "local"

    @property
    def mode(self) -> Mode:
        return self.config.mode

    @property
    def arena(self) -> Arena:
        return self.config.arena

    @property
    def resolved(self) -> bool:
        return self.phase is Phase.RESOLVED

    def droids(self) -> List[Droid]:
        return [*self.side_a, *self.side_b]
