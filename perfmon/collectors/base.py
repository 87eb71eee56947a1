from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class BaseCollector(ABC):
    """Abstract base for periodic collectors.

    Subclasses implement ``tick()``, which must return promptly; any slow work
    is started as its own task. The base class runs the fixed-cadence timer
    and handles graceful shutdown.
    """

    name: str = "base"
    interval: float = 1.0  # seconds between ticks

    def __init__(self, interval: float | None = None) -> None:
        if interval is not None:
            self.interval = interval
        self._running = False
        self._task: asyncio.Task | None = None

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Collector [%s] started (interval=%.1fs)", self.name, self.interval)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Collector [%s] stopped", self.name)

    # ── abstract method ─────────────────────────────────

    @abstractmethod
    def tick(self) -> bool:
        """Handle one timer tick. Returns True if work was started."""
        ...

    # ── internals ───────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                self.tick()
            except Exception:
                logger.exception("Collector [%s] error during tick()", self.name)
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._running
