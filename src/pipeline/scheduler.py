"""
Periodic tick scheduler.

Fires one tick per interval as its own task, whether or not the previous tick
has finished; the controller decides whether a tick does any work. A tick
that raises (a fatal setup error) stops the scheduler and the error is
re-raised from run().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set


class TickScheduler:
    def __init__(self, tick: Callable[[], Awaitable], interval: float):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._tick = tick
        self.interval = interval
        self._running = False
        self._tasks: Set[asyncio.Task] = set()
        self._fatal: Optional[BaseException] = None
        self.fired = 0

    @classmethod
    def from_hz(cls, tick: Callable[[], Awaitable], hz: float) -> "TickScheduler":
        return cls(tick, 1.0 / hz)

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """
        Fire ticks until stop() is called, max_ticks is reached, or a tick fails fatally.

        Outstanding ticks are cancelled on exit.
        """
        loop = asyncio.get_running_loop()
        self._running = True
        self._fatal = None
        next_time = loop.time()

        try:
            while self._running:
                if max_ticks is not None and self.fired >= max_ticks:
                    break
                task = asyncio.create_task(self._tick())
                self._tasks.add(task)
                task.add_done_callback(self._on_tick_done)
                self.fired += 1

                next_time += self.interval
                delay = next_time - loop.time()
                if delay < 0:
                    # Fell behind; restart the cadence instead of bursting.
                    next_time = loop.time()
                    delay = 0
                await asyncio.sleep(delay)

            if self._fatal is None and self._tasks:
                await asyncio.wait(set(self._tasks))
        finally:
            self._running = False
            pending = [t for t in self._tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.wait(pending)

        if self._fatal is not None:
            raise self._fatal

    def _on_tick_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._fatal is None:
            logging.error(f"Tick failed, stopping scheduler: {exc}")
            self._fatal = exc
            self._running = False

    def stop(self) -> None:
        """Stop firing new ticks."""
        self._running = False
