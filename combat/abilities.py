from typing import Callable, Dict, List, Sequence

from loguru import logger

from .model import ActionKind, Arena, Droid, DroidKind, Element, TargetResult
from .rng import DRNG

# Tunnel and Eruption always draw from 0..9, whatever the arena width
STRIKE_ZONE = (0, 9)
BOMBING_RUN_STEPS = 3
SUBMARINE_OFFSET = 2
BLIND_RANGE = 1


def in_range(attacker: Droid, defender: Droid) -> bool:
    """Check whether defender is within attacker's attack range."""
    return abs(defender.position - attacker.position) <= attacker.attack_range


def deal_damage(target: Droid, amount: int) -> int:
    """Subtract damage from target, flooring health at zero. Returns new hp."""
    target.hp = max(0, target.hp - max(0, amount))
    return target.hp


def attempt_attack(attacker: Droid, defender: Droid) -> TargetResult:
    """Range-gated attack with attacker's full attack power."""
    if attacker.alive and in_range(attacker, defender):
        deal_damage(defender, attacker.attack_power)
        return TargetResult(defender.id, "hit", attacker.attack_power, defender.hp, defender.position)
    return TargetResult(defender.id, "miss", 0, defender.hp, defender.position)


def move(droid: Droid, arena: Arena, rng: DRNG) -> TargetResult:
    """Step move_speed cells left or right at random, clamped to the arena."""
    step = rng.sign() * droid.move_speed
    droid.position = arena.clamp(droid.position + step)
    return TargetResult(droid.id, "move", step, droid.hp, droid.position)


def _damage(actor: Droid, target: Droid) -> TargetResult:
    deal_damage(target, actor.attack_power)
    return TargetResult(target.id, "damage", actor.attack_power, target.hp, target.position)


def earthquake(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
               arena: Arena, rng: DRNG) -> List[TargetResult]:
    results = []
    for team in (allies, enemies):
        for d in team:
            if d.element is not Element.WIND:
                results.append(_damage(actor, d))
    return results


def tunnel(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
           arena: Arena, rng: DRNG) -> List[TargetResult]:
    # Not clamped to the arena
    actor.position = rng.integers(*STRIKE_ZONE)
    return [TargetResult(actor.id, "teleport", 0, actor.hp, actor.position)]


def flamethrower(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
                 arena: Arena, rng: DRNG) -> List[TargetResult]:
    return [attempt_attack(actor, d) for d in enemies if d.element is not Element.FIRE]


def eruption(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
             arena: Arena, rng: DRNG) -> List[TargetResult]:
    spot = rng.integers(*STRIKE_ZONE)
    logger.debug(f"{actor.id} erupts at position {spot}")
    results = []
    for team in (allies, enemies):
        for d in team:
            if d.position == spot:
                results.append(_damage(actor, d))
    return results


def heal(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
         arena: Arena, rng: DRNG) -> List[TargetResult]:
    for d in allies:
        if d.hp < d.max_hp:
            restored = d.max_hp - d.hp
            d.hp = d.max_hp
            return [TargetResult(d.id, "heal", restored, d.hp, d.position)]
    return [TargetResult(actor.id, "noop", 0, actor.hp, actor.position)]


def tidal_reposition(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
                     arena: Arena, rng: DRNG) -> List[TargetResult]:
    if not enemies:
        return [TargetResult(actor.id, "noop", 0, actor.hp, actor.position)]
    target = enemies[rng.choice_index(len(enemies))]
    # Not clamped to the arena
    actor.position = target.position - SUBMARINE_OFFSET
    return [TargetResult(actor.id, "teleport", 0, actor.hp, actor.position)]


def bombing_run(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
                arena: Arena, rng: DRNG) -> List[TargetResult]:
    direction = -1 if actor.position > arena.midpoint else 1
    results = []
    for _ in range(BOMBING_RUN_STEPS):
        # Not clamped to the arena during the run
        actor.position += direction
        results.append(TargetResult(actor.id, "move", direction, actor.hp, actor.position))
        for team in (allies, enemies):
            for d in team:
                if d is not actor and d.position == actor.position:
                    results.append(_damage(actor, d))
    return results


def blind(actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid],
          arena: Arena, rng: DRNG) -> List[TargetResult]:
    results = []
    for d in enemies:
        d.attack_range = BLIND_RANGE
        results.append(TargetResult(d.id, "debuff", BLIND_RANGE, d.hp, d.position))
    return results


SpecialAbility = Callable[[Droid, Sequence[Droid], Sequence[Droid], Arena, DRNG], List[TargetResult]]

SPECIAL_ABILITIES: Dict[DroidKind, SpecialAbility] = {
    DroidKind.EARTH_HAMMER: earthquake,
    DroidKind.EARTH_BOER: tunnel,
    DroidKind.FIRE_BURNING: flamethrower,
    DroidKind.FIRE_FLASH: eruption,
    DroidKind.WATER_STORM: heal,
    DroidKind.WATER_SUBMARINE: tidal_reposition,
    DroidKind.WIND_FLYING: bombing_run,
    DroidKind.WIND_SHADOW: blind,
}


class AbilityResolver:
    """Applies one gameplay action of one droid to the droids it affects."""

    def __init__(self, arena: Arena, rng: DRNG):
        self.arena = arena
        self._rng = rng

    def basic_attack(self, actor: Droid, enemies: Sequence[Droid]) -> List[TargetResult]:
        """Attack every enemy independently; each one is a separate hit or miss."""
        return [attempt_attack(actor, d) for d in enemies]

    def special(self, actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid]) -> List[TargetResult]:
        """Run the special ability of the actor's kind."""
        ability = SPECIAL_ABILITIES[actor.kind]
        return ability(actor, allies, enemies, self.arena, self._rng)

    def reposition(self, actor: Droid) -> List[TargetResult]:
        return [move(actor, self.arena, self._rng)]

    def resolve(self, action: ActionKind, actor: Droid,
                allies: Sequence[Droid], enemies: Sequence[Droid]) -> List[TargetResult]:
        """Dispatch a gameplay action. ABORT is handled by the engine, not here."""
        if action is ActionKind.BASIC_ATTACK:
            return self.basic_attack(actor, enemies)
        elif action is ActionKind.SPECIAL_ABILITY:
            return self.special(actor, allies, enemies)
        elif action is ActionKind.REPOSITION:
            return self.reposition(actor)
        raise ValueError(f"{action} is not a gameplay action")
