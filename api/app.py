from contextlib import asynccontextmanager
from pathlib import Path
from typing import Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import StrictInt

from combat.engine import Engine
from combat.errors import BattleConfigError
from combat.model import CATALOG, DROID_TEMPLATES, MAPS, Mode
from runtime.battlelog import BattleLogError, list_battle_logs, read_battle_log
from runtime.eventlog import EventLog
from runtime.runner import BattleRunner
from .config import settings
from .schemas import EventsResponse, StartRequest, StartResponse

runner: BattleRunner | None = None


async def _stop_runner():
    global runner
    try:
        if runner:
            await runner.stop()
    finally:
        runner = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await _stop_runner()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Enable CORS for development (frontend runs on a different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_runner() -> BattleRunner:
    if not runner:
        raise HTTPException(400, "Battle not started")
    return runner


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": settings.app_name,
        "docs": "/docs",
        "version": "1.0"
    }


@app.get("/catalog/droids")
async def droid_catalog():
    """List droid templates in catalog index order."""
    out = []
    for i, kind in enumerate(CATALOG):
        t = DROID_TEMPLATES[kind]
        out.append({
            "index": i,
            "kind": kind.value,
            "name": t.name,
            "element": t.element.value,
            "max_hp": t.max_hp,
            "move_speed": t.move_speed,
            "attack_range": t.attack_range,
            "attack_power": t.attack_power,
            "ability": t.ability,
            "description": t.description,
        })
    return out


@app.get("/catalog/maps")
async def map_catalog():
    """List the elemental maps."""
    return [
        {
            "id": map_id,
            "name": m.name,
            "element": m.element.value,
            "bonus": m.bonus,
            "arena": [m.min_position, m.max_position],
        } for map_id, m in MAPS.items()
    ]


@app.post("/battle/start", response_model=StartResponse)
async def start_battle(req: StartRequest):
    """Start a new battle; replaces any battle in progress."""
    await _stop_runner()
    global runner
    seed = settings.default_seed if req.seed is None else req.seed
    events = EventLog()
    try:
        eng = Engine.create(Mode(req.mode), req.side_a, req.side_b, seed=seed,
                            map_name=req.map, round_limit=settings.round_limit, sink=events)
    except BattleConfigError as e:
        raise HTTPException(422, str(e))
    runner = BattleRunner(eng, events,
                          log_dir=settings.log_dir if settings.save_logs else None,
                          action_delay_s=settings.action_delay_s)
    await runner.start()
    config = eng.state.config
    logger.info(f"[API] Started {req.mode} battle on {config.battle_map.name} (seed {seed})")
    return StartResponse(
        battle_id=eng.state.battle_id,
        map=config.battle_map.name,
        arena=[config.arena.min_position, config.arena.max_position],
    )


@app.post("/battle/local/actions")
async def post_actions(actions: list[Union[StrictInt, str]]):
    """Queue actions; each one is played by whichever droid's turn it is."""
    r = _require_runner()
    if r.engine.state.resolved:
        raise HTTPException(409, "Battle already resolved")
    queued = await r.enqueue_actions(actions)
    return {"queued": queued}


@app.get("/battle/local/state")
async def get_state():
    """Get current battle state snapshot."""
    r = _require_runner()
    s = await r.snapshot()
    turn = None
    if not s.resolved:
        actor, _, _ = r.engine.pending_turn()
        turn = actor.id
    return {
        "battle_id": s.battle_id,
        "mode": s.mode.value,
        "map": s.config.battle_map.name,
        "arena": [s.arena.min_position, s.arena.max_position],
        "round": s.round,
        "phase": s.phase.value,
        "result": s.result.value if s.result else None,
        "error": repr(r.error) if r.error else None,
        "turn": turn,
        "side_a": [d.snapshot() for d in s.side_a],
        "side_b": [d.snapshot() for d in s.side_b],
    }


@app.get("/battle/local/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get events since offset."""
    r = _require_runner()
    evts, next_offset = r.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "round": e.round, "data": e.data} for e in evts]
    )


@app.get("/battle/logs")
async def get_logs():
    """List saved battle logs, newest first."""
    return {"logs": [p.name for p in list_battle_logs(settings.log_dir)]}


@app.get("/battle/logs/{name}")
async def get_log(name: str):
    """Read a saved battle log back."""
    if Path(name).name != name:
        raise HTTPException(400, "Invalid log name")
    try:
        evts = read_battle_log(settings.log_dir / name)
    except BattleLogError as e:
        raise HTTPException(404, str(e))
    return {"name": name, "events": [{"kind": e.kind, "round": e.round, "data": e.data} for e in evts]}
