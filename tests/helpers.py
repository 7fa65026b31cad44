"""Shared builders for combat tests."""
from collections import deque

from combat.model import Droid, DroidKind, Element, MapBonus

# Bonus 0 so map setup never changes the stats a test sets up
NEUTRAL_MAP = MapBonus(name="Proving Ground", element=Element.WIND, bonus=0, max_position=9)


class StubRNG:
    """Random source returning scripted values, recording what was asked."""

    def __init__(self, integers=(), signs=(), indices=()):
        self.seed = None
        self._integers = deque(integers)
        self._signs = deque(signs)
        self._indices = deque(indices)
        self.integer_calls = []

    def integers(self, low, high):
        self.integer_calls.append((low, high))
        return self._integers.popleft()

    def sign(self):
        return self._signs.popleft()

    def choice_index(self, n):
        return self._indices.popleft()


def make_droid(droid_id, kind=DroidKind.FIRE_FLASH, **stats):
    """Droid from a template with selected stats overridden."""
    d = Droid.from_template(droid_id, kind)
    for name, value in stats.items():
        setattr(d, name, value)
    return d
