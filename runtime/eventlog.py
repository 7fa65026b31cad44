from typing import List, Optional, Tuple

from combat.model import BattleOutcome, Event, TurnRecord


class EventLog:
    """Append-only event storage for battle replay and polling.

    Doubles as the in-memory outcome sink of an engine.
    """

    def __init__(self):
        self._log: List[Event] = []
        self.outcome: Optional[BattleOutcome] = None

    def append_many(self, evts: List[Event]) -> Tuple[int, int]:
        """Append events and return (start_offset, end_offset)."""
        start = len(self._log)
        self._log.extend(evts)
        end = len(self._log) - 1
        return start, end

    def record_turn(self, record: TurnRecord) -> None:
        self._log.append(Event("Turn", record.round, record.to_dict()))

    def record_outcome(self, outcome: BattleOutcome) -> None:
        self.outcome = outcome
        self._log.append(Event("BattleEnded", outcome.rounds, outcome.to_dict()))

    def since(self, offset: int, limit: int = 1000) -> tuple[list[Event], int]:
        """Return events starting from offset, up to limit."""
        offset = max(0, offset)
        chunk = self._log[offset: offset + limit]
        return chunk, offset + len(chunk)

    def all(self) -> List[Event]:
        return list(self._log)

    def __len__(self) -> int:
        return len(self._log)
