import json
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from combat.model import Event, Mode, State

LOG_SUFFIX = ".log"
TS_FORMAT = "%Y%m%d_%H%M%S"


class BattleLogError(Exception):
    """A battle log file is missing or unreadable."""


def sanitize_file_name(name: Optional[str]) -> str:
    """Make a string safe to use inside a file name."""
    if name is None:
        return "unknown"
    return re.sub(r"[^A-Za-z0-9_-]", "_", name)


def _timestamp(now: datetime) -> str:
    # yyyyMMdd_HHmmss plus milliseconds
    return now.strftime(TS_FORMAT) + f"{now.microsecond // 1000:03d}"


def log_file_name(state: State, now: Optional[datetime] = None) -> str:
    """Unique log name built from the participants and the time."""
    ts = _timestamp(now or datetime.now())
    if state.mode is Mode.DUEL:
        a = sanitize_file_name(state.side_a[0].name)
        b = sanitize_file_name(state.side_b[0].name)
        return f"one_vs_one_{a}_vs_{b}_{ts}{LOG_SUFFIX}"
    first_a = sanitize_file_name(state.side_a[0].name) if state.side_a else "A"
    first_b = sanitize_file_name(state.side_b[0].name) if state.side_b else "B"
    return (f"team_vs_team_{len(state.side_a)}v{len(state.side_b)}_"
            f"{first_a}_vs_{first_b}_{ts}{LOG_SUFFIX}")


def write_battle_log(directory: Path, state: State, events: Iterable[Event],
                     now: Optional[datetime] = None) -> Path:
    """Write the event stream of a battle as JSON lines. Returns the file path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / log_file_name(state, now)
    with path.open("w", encoding="utf-8") as f:
        for e in events:
            f.write(json.dumps({"kind": e.kind, "round": e.round, "data": e.data}) + "\n")
    logger.info(f"Battle log saved to {path.resolve()}")
    return path


def read_battle_log(path: Path) -> List[Event]:
    """Read a saved battle log back into events."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise BattleLogError(f"cannot read battle log {path}: {e}") from e

    events: List[Event] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
            events.append(Event(raw["kind"], int(raw["round"]), raw["data"]))
        except (ValueError, KeyError, TypeError) as e:
            raise BattleLogError(f"{path}:{lineno}: malformed event: {e}") from e
    return events


def list_battle_logs(directory: Path) -> List[Path]:
    """Saved battle logs in a directory, newest first."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    logs = [p for p in directory.iterdir() if p.is_file() and p.suffix == LOG_SUFFIX]
    return sorted(logs, key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
