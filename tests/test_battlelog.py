"""Test battle log naming, persistence and read-back."""
from datetime import datetime

import pytest
from combat.engine import Engine
from combat.model import ActionKind, Event, Mode
from runtime.battlelog import (
    BattleLogError, list_battle_logs, log_file_name, read_battle_log, sanitize_file_name,
    write_battle_log,
)
from runtime.eventlog import EventLog

NOW = datetime(2024, 3, 9, 14, 5, 7, 123456)


def test_sanitize_file_name():
    assert sanitize_file_name("FlyingDroid ") == "FlyingDroid_"
    assert sanitize_file_name("a/b:c") == "a_b_c"
    assert sanitize_file_name(None) == "unknown"


def test_duel_log_name():
    eng = Engine.create(Mode.DUEL, [0], [7], seed=1)
    assert log_file_name(eng.state, NOW) == \
        "one_vs_one_HammerDroid_vs_ShadowDroid_20240309_140507123.log"


def test_team_log_name():
    eng = Engine.create(Mode.TEAM, [2, 3, 4], [5, 6], seed=1)
    assert log_file_name(eng.state, NOW) == \
        "team_vs_team_3v2_BurningDroid_vs_SubmarineDroid_20240309_140507123.log"


def test_write_and_read_back(tmp_path):
    sink = EventLog()
    eng = Engine.create(Mode.DUEL, [1], [4], seed=5, sink=sink)
    sink.append_many(eng.setup_events)
    eng.act(ActionKind.BASIC_ATTACK)
    eng.act(ActionKind.ABORT)

    path = write_battle_log(tmp_path / "logs", eng.state, sink.all(), NOW)

    assert path.parent == tmp_path / "logs"
    events = read_battle_log(path)
    assert [e.kind for e in events] == [e.kind for e in sink.all()]
    assert events[-1].kind == "BattleEnded"
    assert events[-1].data["result"] == "aborted_by_action"
    assert events == sink.all()


def test_list_logs_newest_first(tmp_path):
    eng = Engine.create(Mode.DUEL, [1], [4], seed=5)
    older = write_battle_log(tmp_path, eng.state, [Event("Turn", 1, {})], datetime(2024, 1, 1))
    newer = write_battle_log(tmp_path, eng.state, [Event("Turn", 1, {})], datetime(2024, 1, 2))
    (tmp_path / "notes.txt").write_text("not a log")
    logs = list_battle_logs(tmp_path)
    assert set(logs) == {older, newer}
    assert len(logs) == 2


def test_list_logs_missing_directory(tmp_path):
    assert list_battle_logs(tmp_path / "nope") == []


def test_read_missing_log(tmp_path):
    with pytest.raises(BattleLogError):
        read_battle_log(tmp_path / "missing.log")


def test_read_garbled_log(tmp_path):
    path = tmp_path / "bad.log"
    path.write_text('{"kind": "Turn", "round": 1, "data": {}}\nnot json\n', encoding="utf-8")
    with pytest.raises(BattleLogError, match="bad.log:2"):
        read_battle_log(path)
