from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Protocol, Sequence

from .model import ActionKind, Droid


class ActionSelector(Protocol):
    """Chooses the action of the droid whose turn it is."""

    def __call__(self, actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid]) -> Any:
        ...


class ScriptedSelector:
    """Replays a fixed list of actions, optionally one list per droid id.

    Once a script runs dry the default action is returned.
    """

    def __init__(self, actions: Optional[Iterable[Any]] = None,
                 per_droid: Optional[Dict[str, Iterable[Any]]] = None,
                 default: Any = ActionKind.REPOSITION):
        self._shared: Deque[Any] = deque(actions or [])
        self._per_droid: Dict[str, Deque[Any]] = {k: deque(v) for k, v in (per_droid or {}).items()}
        self.default = default
        self.calls: List[str] = []

    def __call__(self, actor: Droid, allies: Sequence[Droid], enemies: Sequence[Droid]) -> Any:
        self.calls.append(actor.id)
        own = self._per_droid.get(actor.id)
        if own:
            return own.popleft()
        if self._shared:
            return self._shared.popleft()
        return self.default
