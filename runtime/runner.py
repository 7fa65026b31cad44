import asyncio
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger

from combat.engine import Engine
from combat.model import State
from .battlelog import write_battle_log
from .eventlog import EventLog


class BattleRunner:
    """Async driver that feeds queued actions to the engine, one turn each.

    The queue plays the part of the action selector: whoever's turn it is
    gets the next queued action.
    """

    def __init__(self, engine: Engine, events: EventLog, log_dir: Optional[Path] = None,
                 action_delay_s: float = 0.0):
        self.engine = engine
        self.events = events
        self.log_dir = log_dir
        self.action_delay_s = max(0.0, action_delay_s)
        self.log_path: Optional[Path] = None
        self.error: Optional[Exception] = None
        self.finished = asyncio.Event()
        self._actions: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self.events.append_many(engine.setup_events)

    async def start(self):
        """Start consuming queued actions."""
        if self._task:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the loop gracefully."""
        if not self._task:
            return
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            # Already logged by _loop and kept on self.error
            pass
        finally:
            self._task = None

    async def _loop(self):
        """Apply queued actions until the battle resolves, then save the log."""
        try:
            while not self.engine.state.resolved:
                action = await self._actions.get()
                async with self._lock:
                    record = self.engine.act(action)
                logger.debug(f"[BattleRunner] {record.actor_id} played {record.action}")
                if self.action_delay_s:
                    await asyncio.sleep(self.action_delay_s)
            self._save()
        except Exception as e:
            logger.exception(f"[BattleRunner] battle {self.engine.state.battle_id} halted: {e}")
            self.error = e
            raise
        finally:
            self.finished.set()

    def _save(self):
        if self.log_dir is None:
            return
        try:
            self.log_path = write_battle_log(self.log_dir, self.engine.state, self.events.all())
        except OSError as e:
            logger.error(f"[BattleRunner] could not write battle log to {self.log_dir}: {e}")

    async def enqueue_actions(self, actions: List[Any]) -> int:
        """Queue actions for the upcoming turns, in order."""
        logger.debug(f"[BattleRunner] Enqueuing {len(actions)} actions")
        for a in actions:
            await self._actions.put(a)
        return len(actions)

    @property
    def pending(self) -> int:
        return self._actions.qsize()

    async def snapshot(self) -> State:
        """Get current state (consistent with in-flight turns)."""
        async with self._lock:
            return self.engine.snapshot()
