"""Round lifecycle and tick loop driving a SimulationEngine."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from .constants import (
    ROWS, COLS, TICK_INTERVAL, POLL_INTERVAL,
    COUNTDOWN_FROM, COUNTDOWN_STEP, DEAD_SEGMENT_DELAY, GAME_OVER_DELAY,
)
from .engine import SimulationEngine
from .models import Direction, SessionPhase

logger = logging.getLogger(__name__)

Listener = Callable[["GameSession"], Awaitable[None]]


class GameSession:
    """Owns one engine at a time and advances it on a pause-aware cadence.

    Every engine call happens on the event loop that runs the session, so
    input handlers and the tick loop never interleave mid-mutation.
    """

    def __init__(
        self,
        rows: int = ROWS,
        cols: int = COLS,
        rng: Optional[random.Random] = None,
        on_change: Optional[Listener] = None,
        tick_interval: float = TICK_INTERVAL,
        poll_interval: float = POLL_INTERVAL,
        countdown_step: float = COUNTDOWN_STEP,
        dead_segment_delay: float = DEAD_SEGMENT_DELAY,
        game_over_delay: float = GAME_OVER_DELAY,
    ):
        self.rows = rows
        self.cols = cols
        self.rng = rng if rng is not None else random.Random()
        self.on_change = on_change
        self.tick_interval = tick_interval
        self.poll_interval = poll_interval
        self.countdown_step = countdown_step
        self.dead_segment_delay = dead_segment_delay
        self.game_over_delay = game_over_delay

        self.engine = SimulationEngine(rows, cols, rng=self.rng)
        self.phase = SessionPhase.IDLE
        self.countdown: Optional[int] = None
        self.dead_segments = 0
        self.last_score = 0
        self.best_score = 0
        self.rounds_played = 0
        self._in_round = False
        self._paused = False
        self._round_task: Optional[asyncio.Task] = None
        self._resume_task: Optional[asyncio.Task] = None
        self._notify_task: Optional[asyncio.Task] = None

    @property
    def in_round(self) -> bool:
        return self._in_round

    async def notify(self):
        if self.on_change is not None:
            await self.on_change(self)

    def start(self) -> Optional[asyncio.Task]:
        """Schedule a round on the running loop unless one is in progress."""
        if self._in_round:
            return None
        self._in_round = True
        self._round_task = asyncio.create_task(self.run_round())
        return self._round_task

    async def run_round(self):
        self._in_round = True
        try:
            if self.engine.game_over:
                self.engine = SimulationEngine(self.rows, self.cols, rng=self.rng)
                self.dead_segments = 0
            logger.info("Round %d starting on %dx%d grid", self.rounds_played + 1, self.rows, self.cols)
            await self._countdown()
            self.phase = SessionPhase.RUNNING
            await self.notify()
            await self._game_loop()
            await self._show_game_over()
        except Exception:
            logger.exception("Round aborted")
            self.abort_round()
            raise
        finally:
            self._in_round = False
            self._paused = False

    def abort_round(self):
        """Drop the current round; the next start() builds a fresh engine."""
        self.engine.game_over = True
        self.phase = SessionPhase.IDLE
        self.countdown = None

    async def _countdown(self):
        self.phase = SessionPhase.COUNTDOWN
        for n in range(COUNTDOWN_FROM, 0, -1):
            self.countdown = n
            await self.notify()
            await asyncio.sleep(self.countdown_step)
        self.countdown = None

    def polls_per_tick(self) -> int:
        return max(1, int(round(self.tick_interval / self.poll_interval)))

    async def _game_loop(self):
        polls_per_tick = self.polls_per_tick()
        polls = 0
        while not self.engine.game_over:
            while polls < polls_per_tick or self._paused:
                if self._paused:
                    while self._paused:
                        await asyncio.sleep(self.poll_interval)
                    polls = 0
                await asyncio.sleep(self.poll_interval)
                polls += 1
            self.engine.advance()
            await self.notify()
            polls = 0

    async def _show_game_over(self):
        self.phase = SessionPhase.GAME_OVER
        self.last_score = self.engine.score
        self.best_score = max(self.best_score, self.last_score)
        self.rounds_played += 1
        logger.info("Round %d over, score %d (best %d)", self.rounds_played, self.last_score, self.best_score)
        for i in range(len(self.engine.body())):
            self.dead_segments = i + 1
            await self.notify()
            await asyncio.sleep(self.dead_segment_delay)
        await asyncio.sleep(self.game_over_delay)
        await self.notify()

    def toggle_pause(self) -> Optional[asyncio.Task]:
        """Pause a running round, or resume a paused one after a countdown."""
        if self.phase == SessionPhase.RUNNING:
            self._paused = True
            self.phase = SessionPhase.PAUSED
            self._notify_task = asyncio.create_task(self.notify())
            return self._notify_task
        if self.phase == SessionPhase.PAUSED:
            self._resume_task = asyncio.create_task(self._resume())
            return self._resume_task
        return None

    async def _resume(self):
        await self._countdown()
        self.phase = SessionPhase.RUNNING
        self._paused = False
        await self.notify()

    def change_direction(self, direction: Direction) -> bool:
        if self.phase != SessionPhase.RUNNING:
            return False
        self.engine.request_direction_change(direction)
        return True

    async def stop(self):
        for task in (self._notify_task, self._resume_task, self._round_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
