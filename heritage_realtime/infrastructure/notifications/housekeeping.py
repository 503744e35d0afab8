"""Background tasks keeping live connections and stored notifications tidy."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Callable

from anyio import to_thread

from heritage_realtime.utils import utcnow

from . import protocol
from .connection import CLOSE_GOING_AWAY
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Ping every live connection and close the ones that went silent."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        interval: float,
        timeout: float,
    ) -> None:
        self._registry = registry
        self.interval = interval
        self.timeout = timeout

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()

    async def run_once(self, now: float | None = None) -> int:
        """Ping live connections and return how many idle ones were closed."""

        now = time.monotonic() if now is None else now
        closed = 0
        for connection in self._registry.all_connections():
            if connection.idle_seconds(now) > self.timeout:
                logger.info(
                    "Closing idle connection %s after %.0fs without activity",
                    connection.id,
                    connection.idle_seconds(now),
                )
                await connection.close(code=CLOSE_GOING_AWAY, reason="heartbeat timeout")
                closed += 1
                continue
            connection.send(protocol.build_envelope(protocol.EVENT_PING))
        return closed


class ExpirySweeper:
    """Periodically delete notifications that expired longer than ``grace`` ago."""

    def __init__(
        self,
        sweep: Callable[[datetime], int],
        *,
        interval: float,
        grace: float,
    ) -> None:
        self._sweep = sweep
        self.interval = interval
        self.grace = grace

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Expired notification sweep failed")

    async def run_once(self, now: datetime | None = None) -> int:
        cutoff = (now or utcnow()) - timedelta(seconds=self.grace)
        removed = await to_thread.run_sync(self._sweep, cutoff)
        if removed:
            logger.info("Removed %d expired notification(s)", removed)
        return removed


__all__ = ["ExpirySweeper", "HeartbeatMonitor"]
