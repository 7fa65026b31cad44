"""Test the FastAPI endpoints."""
import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import api.app as app_module
from api.app import app
from api.config import settings


@pytest_asyncio.fixture(autouse=True)
async def fresh_battle(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "log_dir", tmp_path)
    monkeypatch.setattr(app_module, "runner", None)
    yield
    await app_module._stop_runner()


def client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def wait_resolved(ac: AsyncClient) -> dict:
    for _ in range(100):
        data = (await ac.get("/battle/local/state")).json()
        if data["phase"] == "resolved":
            return data
        await asyncio.sleep(0.01)
    raise AssertionError("battle did not resolve")


@pytest.mark.asyncio
async def test_catalogs():
    async with client() as ac:
        droids = (await ac.get("/catalog/droids")).json()
        maps = (await ac.get("/catalog/maps")).json()
    assert len(droids) == 8
    assert droids[0]["name"] == "HammerDroid"
    assert droids[7]["kind"] == "WindShadow"
    assert {m["id"] for m in maps} == {"CAVE", "OCEAN", "SKY", "VOLCANO"}


@pytest.mark.asyncio
async def test_start_battle():
    """Test starting a new battle."""
    async with client() as ac:
        response = await ac.post("/battle/start", json={"seed": 123, "map": "volcano"})
    assert response.status_code == 200
    assert response.json() == {"battle_id": "local", "map": "Volcano", "arena": [0, 9]}


@pytest.mark.asyncio
async def test_start_rejects_oversized_team():
    async with client() as ac:
        response = await ac.post("/battle/start", json={"mode": "team", "side_a": [0] * 7, "side_b": [1]})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_state():
    """Test getting battle state."""
    async with client() as ac:
        await ac.post("/battle/start", json={"mode": "team", "side_a": [0, 1], "side_b": ["WindShadow", 4],
                                             "seed": 42, "map": "cave"})
        response = await ac.get("/battle/local/state")

    assert response.status_code == 200
    data = response.json()
    assert data["round"] == 1
    assert data["phase"] == "setup_complete"
    assert data["turn"] == "A1"
    assert [d["kind"] for d in data["side_b"]] == ["WindShadow", "WaterStorm"]


@pytest.mark.asyncio
async def test_state_requires_battle():
    async with client() as ac:
        response = await ac.get("/battle/local/state")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_post_actions_and_abort():
    """Test submitting actions until the battle is aborted."""
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42})
        response = await ac.post("/battle/local/actions", json=["reposition", "dance", 0])
        assert response.status_code == 200
        assert response.json() == {"queued": 3}

        data = await wait_resolved(ac)
        assert data["result"] == "aborted_by_action"
        assert data["turn"] is None

        late = await ac.post("/battle/local/actions", json=[1])
        assert late.status_code == 409


@pytest.mark.asyncio
async def test_get_events():
    """Test retrieving events."""
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42})
        await ac.post("/battle/local/actions", json=["basic_attack", "dance"])
        await asyncio.sleep(0.05)
        response = await ac.get("/battle/local/events?since=0")

    assert response.status_code == 200
    data = response.json()
    kinds = [e["kind"] for e in data["events"]]
    assert kinds[0] == "BattleStarted"
    assert kinds.count("Turn") == 2
    assert data["events"][-1]["data"]["action"] == "invalid"
    assert data["next_offset"] == len(data["events"])


@pytest.mark.asyncio
async def test_saved_logs_can_be_read_back():
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 1})
        await ac.post("/battle/local/actions", json=["abort"])
        await wait_resolved(ac)
        await asyncio.sleep(0.05)

        logs = (await ac.get("/battle/logs")).json()["logs"]
        assert len(logs) == 1
        assert logs[0].startswith("one_vs_one_HammerDroid_vs_ShadowDroid_")

        response = await ac.get(f"/battle/logs/{logs[0]}")
        assert response.status_code == 200
        events = response.json()["events"]
        assert events[-1]["kind"] == "BattleEnded"

        missing = await ac.get("/battle/logs/nope.log")
        assert missing.status_code == 404


@pytest.mark.asyncio
async def test_bool_action_rejected():
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42})
        response = await ac.post("/battle/local/actions", json=[True])
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_new_battle_after_engine_failure():
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42})
        crashed = app_module.runner
        crashed.engine.state.side_b[0].hp = 999
        await ac.post("/battle/local/actions", json=[1])
        await asyncio.wait_for(crashed.finished.wait(), timeout=2)

        data = (await ac.get("/battle/local/state")).json()
        assert "InvariantViolation" in data["error"]
        assert data["phase"] != "resolved"

        response = await ac.post("/battle/start", json={"seed": 7})
        assert response.status_code == 200
        assert app_module.runner is not crashed
        assert (await ac.get("/battle/local/state")).json()["error"] is None
