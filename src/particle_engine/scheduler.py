"""Fixed-interval tick loop with a stop flag."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger("particle_engine.scheduler")


class TickScheduler:
    """Calls ``step`` at a steady rate until stopped.

    Ticks run to completion one after another. If a tick overruns its slot
    the next one starts immediately; missed slots are not replayed.
    """

    def __init__(self, step: Callable[[], object], fps: float = 60.0):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self._step = step
        self.interval = 1.0 / fps
        self._stop = threading.Event()
        self._active = False
        self.ticks = 0
        self.overruns = 0

    @property
    def running(self) -> bool:
        return self._active

    def stop(self):
        self._stop.set()

    def _advance(self, deadline: float) -> float:
        """Run one step; return seconds to wait before the next."""
        self._step()
        self.ticks += 1
        deadline += self.interval
        now = time.monotonic()
        if now > deadline:
            self.overruns += 1
            return 0.0
        return deadline - now

    def run(self, max_ticks: Optional[int] = None):
        """Blocking loop. Returns after ``stop()`` or ``max_ticks`` ticks."""
        self._stop.clear()
        self._active = True
        deadline = time.monotonic()
        logger.debug("Tick loop started at %.1f fps", 1.0 / self.interval)
        try:
            while not self._stop.is_set():
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                wait = self._advance(deadline)
                deadline = time.monotonic() + wait
                if wait > 0:
                    self._stop.wait(wait)
        finally:
            self._active = False
            self._stop.set()
            logger.debug("Tick loop stopped after %d ticks", self.ticks)

    async def run_async(self, max_ticks: Optional[int] = None):
        """Same loop for an asyncio event loop; yields between ticks."""
        self._stop.clear()
        self._active = True
        deadline = time.monotonic()
        try:
            while not self._stop.is_set():
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                wait = self._advance(deadline)
                deadline = time.monotonic() + wait
                await asyncio.sleep(wait)
        finally:
            self._active = False
            self._stop.set()
            logger.debug("Async tick loop stopped after %d ticks", self.ticks)
