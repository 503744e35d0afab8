"""Owner of the realtime state for one application instance."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Callable

from heritage_realtime.config import Settings, get_settings

from .dispatcher import DeliveryDispatcher
from .housekeeping import ExpirySweeper, HeartbeatMonitor
from .registry import ConnectionRegistry
from .tours import TourEventPublisher

logger = logging.getLogger(__name__)


class RealtimeHub:
    """Group the registry, dispatcher and background tasks of the realtime layer.

    The hub is created in the application lifespan and stored on ``app.state``.
    :meth:`stop` closes every connection and resets the routing state.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = ConnectionRegistry()
        self.dispatcher = DeliveryDispatcher(self.registry)
        self.tours = TourEventPublisher(self.dispatcher)
        self.heartbeat = HeartbeatMonitor(
            self.registry,
            interval=self.settings.heartbeat_interval_seconds,
            timeout=self.settings.heartbeat_timeout_seconds,
        )
        self.sweeper: ExpirySweeper | None = None
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def attach_sweeper(self, sweep: Callable[[datetime], int]) -> ExpirySweeper:
        self.sweeper = ExpirySweeper(
            sweep,
            interval=self.settings.expiry_sweep_interval_seconds,
            grace=self.settings.expiry_grace_seconds,
        )
        return self.sweeper

    async def start(self) -> None:
        if self._tasks:
            return
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self.heartbeat.run(), name="realtime-heartbeat"))
        if self.sweeper is not None:
            self._tasks.append(loop.create_task(self.sweeper.run(), name="realtime-expiry-sweeper"))
        logger.info("Realtime hub started")

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.registry.close_all()
        logger.info("Realtime hub stopped")


__all__ = ["RealtimeHub"]
