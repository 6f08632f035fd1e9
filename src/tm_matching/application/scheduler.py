"""Interval scheduler: runs a matching pass every N seconds inside the app's event loop.

Started and stopped by the FastAPI lifespan. A failing tick is logged and the
loop keeps going; passes never overlap because each tick awaits the previous one.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.tm_common.errors import AppError
from src.tm_matching.domain.models import MatchingPassResult

logger = logging.getLogger(__name__)

PassRunner = Callable[[], Awaitable[MatchingPassResult]]


class MatchingScheduler:
    def __init__(self, run_pass: PassRunner, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._run_pass = run_pass
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="matching-scheduler")
        logger.info("Matching scheduler started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        try:
            await asyncio.wait_for(self._task, timeout=self._interval + 5)
        except asyncio.TimeoutError:
            self._task.cancel()
            logger.warning("Matching scheduler did not stop in time, cancelled")
        self._task = None
        logger.info("Matching scheduler stopped after %d ticks", self.ticks)

    async def tick(self) -> MatchingPassResult | None:
        """Run one pass; errors are logged, never raised."""
        self.ticks += 1
        try:
            return await self._run_pass()
        except AppError as exc:
            logger.warning("Scheduled matching pass skipped: [%d] %s", exc.code, exc.message)
        except Exception:
            logger.exception("Scheduled matching pass crashed")
        return None

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
