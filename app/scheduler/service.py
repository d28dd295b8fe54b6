import asyncio
import logging
from typing import Optional

from app.coordinator import Coordinator
from app.scheduler.ticker import run_ticker
from app.settings import settings


logger = logging.getLogger(__name__)

class WatchdogService:
    def __init__(self, coordinator: Coordinator, interval: Optional[float] = None):
        self.coordinator = coordinator
        self.interval = interval if interval is not None else settings.TIMEOUT_CHECK_INTERVAL_SECONDS
        self._running = False
        self._task = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Watchdog service started (interval=%ss).", self.interval)

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Watchdog service stopped.")

    async def _loop(self):
        while self._running:
            try:
                run_ticker(self.coordinator)
            except Exception as e:
                logger.error(f"Error in watchdog ticker: {e}", exc_info=True)

            await asyncio.sleep(self.interval)
