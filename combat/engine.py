from typing import List, Optional, Protocol, Sequence, Tuple, Union

from loguru import logger

from .abilities import AbilityResolver
from .errors import BattleConfigError, BattleResolvedError, InvariantViolation
from .model import (
    MAPS, MAX_ROUNDS, MAX_TEAM_SIZE, MIN_TEAM_SIZE, ActionKind, Arena, BattleConfig,
    BattleOutcome, Droid, DroidKind, Element, Event, MapBonus, Mode, Phase, Result,
    State, Team, TurnRecord, droid_kind,
)
from .rng import DRNG
from .selectors import ActionSelector

KindRef = Union[DroidKind, int, str]


class OutcomeSink(Protocol):
    """Receives every turn record and the final outcome of a battle."""

    def record_turn(self, record: TurnRecord) -> None:
        ...

    def record_outcome(self, outcome: BattleOutcome) -> None:
        ...


def pick_map(rng: DRNG) -> MapBonus:
    """Draw one of the elemental maps uniformly."""
    maps = list(MAPS.values())
    return maps[rng.choice_index(len(maps))]


def find_map(name: str) -> MapBonus:
    try:
        return MAPS[name.strip().upper()]
    except KeyError:
        raise BattleConfigError(f"unknown map {name!r}, expected one of {sorted(MAPS)}") from None


def apply_map_bonus(droid: Droid, battle_map: MapBonus) -> Optional[str]:
    """Grant the map's bonus to a matching droid, once. Returns the boosted stat."""
    if droid.bonus_applied or droid.element is not battle_map.element:
        return None
    droid.bonus_applied = True
    bonus = battle_map.bonus
    if battle_map.element is Element.EARTH:
        # Clamped, so the bonus is wasted on a droid already at full health
        droid.hp = min(droid.max_hp, droid.hp + bonus)
        return "hp"
    elif battle_map.element is Element.FIRE:
        droid.attack_power += bonus
        return "attack_power"
    elif battle_map.element is Element.WATER:
        droid.move_speed += bonus
        return "move_speed"
    droid.attack_range += bonus
    return "attack_range"


def spawn_line(team: Team, start: int, end: int) -> None:
    """Spread a team evenly over [start, end] in list order."""
    if not team:
        return
    if start > end:
        start, end = end, start
    span = max(0, end - start)
    for i, d in enumerate(team):
        d.position = start if span == 0 else start + i * span // max(1, len(team) - 1)


def spawn_teams(side_a: Team, side_b: Team, arena: Arena) -> None:
    """Side A takes the first third of the arena, side B the last third."""
    width = max(1, arena.width)
    spawn_line(side_a, arena.min_position, arena.min_position + width // 3)
    spawn_line(side_b, arena.max_position - width // 3, arena.max_position)


def validate_setup(config: BattleConfig, side_a: Team, side_b: Team) -> None:
    """Reject a battle that cannot be played, before any turn runs."""
    if config.arena.width <= 0:
        raise BattleConfigError(
            f"arena [{config.arena.min_position}, {config.arena.max_position}] has no width")
    if config.round_limit <= 0:
        raise BattleConfigError(f"round limit must be positive, got {config.round_limit}")
    for label, team in (("A", side_a), ("B", side_b)):
        if not team:
            raise BattleConfigError(f"side {label} is empty")
        if config.mode is Mode.DUEL and len(team) != 1:
            raise BattleConfigError(f"a duel needs exactly one droid per side, side {label} has {len(team)}")
        if not MIN_TEAM_SIZE <= len(team) <= MAX_TEAM_SIZE:
            raise BattleConfigError(
                f"side {label} has {len(team)} droids, allowed {MIN_TEAM_SIZE}..{MAX_TEAM_SIZE}")
        if not _team_alive(team):
            raise BattleConfigError(f"side {label} has no droid left standing")
    ids = [d.id for d in (*side_a, *side_b)]
    if len(set(ids)) != len(ids):
        raise BattleConfigError(f"droid ids must be unique: {ids}")


def _team_alive(team: Team) -> bool:
    return any(d.alive for d in team)


class Engine:
    """Pure, deterministic battle state machine for duels and team battles."""

    def __init__(self, config: BattleConfig, side_a: Team, side_b: Team, rng: DRNG,
                 sink: Optional[OutcomeSink] = None, battle_id: str = "local"):
        validate_setup(config, side_a, side_b)
        self.state = State(config=config, side_a=list(side_a), side_b=list(side_b), battle_id=battle_id)
        self.resolver = AbilityResolver(config.arena, rng)
        self.outcome: Optional[BattleOutcome] = None
        self._rng = rng
        self._sink = sink
        # Turn cursor: acting side (0 = A, 1 = B) and slot within that side
        self._side = 0
        self._slot = 0
        self.setup_events = self._setup()
        self._seek()

    @classmethod
    def create(cls, mode: Mode, side_a: Sequence[KindRef], side_b: Sequence[KindRef],
               seed: Optional[int] = None, map_name: Optional[str] = None,
               round_limit: int = MAX_ROUNDS, sink: Optional[OutcomeSink] = None,
               battle_id: str = "local") -> "Engine":
        """Build a battle from droid kinds, drawing map and spawn positions from the seed."""
        rng = DRNG(seed)
        battle_map = find_map(map_name) if map_name else pick_map(rng)
        config = BattleConfig.for_map(mode, battle_map, round_limit)
        arena = config.arena
        teams: List[Team] = []
        for prefix, kinds in (("A", side_a), ("B", side_b)):
            team = []
            for i, ref in enumerate(kinds, start=1):
                try:
                    kind = droid_kind(ref)
                except KeyError as e:
                    raise BattleConfigError(str(e.args[0])) from None
                position = rng.integers(arena.min_position, arena.max_position)
                team.append(Droid.from_template(f"{prefix}{i}", kind, position))
            teams.append(team)
        return cls(config, teams[0], teams[1], rng, sink=sink, battle_id=battle_id)

    def _setup(self) -> List[Event]:
        """Place teams and grant map bonuses. Runs exactly once per battle."""
        config = self.state.config
        battle_map = config.battle_map
        if config.mode is Mode.TEAM:
            spawn_teams(self.state.side_a, self.state.side_b, config.arena)

        evts: List[Event] = []
        for d in self.state.droids():
            stat = apply_map_bonus(d, battle_map)
            if stat:
                logger.info(f"{d.id} ({d.name}) gets +{battle_map.bonus} {stat} from {battle_map.name}")
            else:
                logger.info(f"{d.id} ({d.name}) gets no bonus: "
                            f"{d.element.value} vs {battle_map.element.value}")
            evts.append(Event("MapBonus", 0, {"droid_id": d.id, "applied": bool(stat),
                                              "stat": stat, "amount": battle_map.bonus if stat else 0}))

        evts.insert(0, Event("BattleStarted", 0, {
            "battle_id": self.state.battle_id,
            "mode": config.mode.value,
            "map": battle_map.name,
            "element": battle_map.element.value,
            "bonus": battle_map.bonus,
            "arena": [config.arena.min_position, config.arena.max_position],
            "round_limit": config.round_limit,
            "seed": self._rng.seed,
            "side_a": [d.snapshot() for d in self.state.side_a],
            "side_b": [d.snapshot() for d in self.state.side_b],
        }))
        logger.info(f"Battle {self.state.battle_id}: {config.mode.value} on {battle_map.name} "
                    f"arena [{config.arena.min_position}..{config.arena.max_position}]")
        return evts

    def _sides(self) -> Tuple[Team, Team]:
        return self.state.side_a, self.state.side_b

    def pending_turn(self) -> Tuple[Droid, List[Droid], List[Droid]]:
        """Return (actor, ally context, enemy context) for the turn about to be played.

        The ally context is only the actor itself, in both modes. The enemy
        context is the whole opposing side, fallen droids included.
        """
        if self.state.resolved:
            raise BattleResolvedError(f"battle {self.state.battle_id} is already resolved")
        own, other = self._sides() if self._side == 0 else self._sides()[::-1]
        actor = own[self._slot]
        return actor, [actor], list(other)

    def act(self, choice: object) -> TurnRecord:
        """Play one turn for the current actor and evaluate termination."""
        actor, allies, enemies = self.pending_turn()
        self.state.phase = Phase.ROUND_IN_PROGRESS
        round_no = self.state.round
        action = ActionKind.parse(choice)

        if action is None:
            logger.warning(f"[Engine] {actor.id}: unrecognized action {choice!r}, turn skipped")
            record = TurnRecord(round_no, actor.id, "invalid", anomaly=f"unrecognized action {choice!r}")
        elif action is ActionKind.ABORT:
            record = TurnRecord(round_no, actor.id, action.value)
            self._emit(record)
            self._resolve(Result.ABORTED_BY_ACTION)
            return record
        else:
            results = self.resolver.resolve(action, actor, allies, enemies)
            record = TurnRecord(round_no, actor.id, action.value, results)
            self._check_invariants(actor, action)
        self._emit(record)

        result = self._annihilation_result()
        if result is not None:
            self._resolve(result)
            return record

        self._advance()
        if self.state.round > self.state.config.round_limit:
            self._resolve(Result.DRAW_BY_ROUND_LIMIT)
        return record

    def run(self, selector: ActionSelector) -> BattleOutcome:
        """Drive the battle to its end, asking the selector for every action."""
        while not self.state.resolved:
            actor, allies, enemies = self.pending_turn()
            self.act(selector(actor, allies, enemies))
        return self.outcome

    def _emit(self, record: TurnRecord) -> None:
        logger.debug(f"[Engine] round {record.round} {record.actor_id} {record.action}: "
                     f"{[r.to_dict() for r in record.results]}")
        if self._sink is not None:
            self._sink.record_turn(record)

    def _advance(self) -> None:
        """Move the cursor to the next living droid, rolling over to the next round."""
        self._slot += 1
        self._seek()

    def _seek(self) -> None:
        while True:
            team = self._sides()[self._side]
            while self._slot < len(team):
                if team[self._slot].alive:
                    return
                self._slot += 1
            self._slot = 0
            if self._side == 0:
                self._side = 1
            else:
                self._side = 0
                self.state.round += 1

    def _annihilation_result(self) -> Optional[Result]:
        a_alive = _team_alive(self.state.side_a)
        b_alive = _team_alive(self.state.side_b)
        if a_alive and not b_alive:
            return Result.SIDE_A_WINS
        elif b_alive and not a_alive:
            return Result.SIDE_B_WINS
        elif not a_alive and not b_alive:
            return Result.DRAW_BY_ANNIHILATION
        return None

    def _check_invariants(self, actor: Droid, action: ActionKind) -> None:
        for d in self.state.droids():
            if not 0 <= d.hp <= d.max_hp:
                raise InvariantViolation(f"{d.id} hp {d.hp} outside [0, {d.max_hp}]")
        if action is ActionKind.REPOSITION and not self.state.arena.contains(actor.position):
            raise InvariantViolation(f"{actor.id} moved to {actor.position}, outside the arena")

    def _resolve(self, result: Result) -> None:
        state = self.state
        state.phase = Phase.RESOLVED
        state.result = result
        self.outcome = BattleOutcome(
            mode=state.mode,
            map_name=state.config.battle_map.name,
            rounds=min(state.round, state.config.round_limit),
            result=result,
            side_a=[d.snapshot() for d in state.side_a],
            side_b=[d.snapshot() for d in state.side_b],
        )
        logger.info(f"Battle {state.battle_id} resolved after {self.outcome.rounds} rounds: {result.value}")
        if self._sink is not None:
            self._sink.record_outcome(self.outcome)

    def snapshot(self) -> State:
        """Return current state."""
        return self.state
