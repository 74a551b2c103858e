"""
Application-level liveness checks.

The venue answers ``{"op": "ping"}`` with the literal frame
``{"type": "pong"}``. A round-trip slower than ``stale_timeout`` marks the
connection stale and the owner drops it.

Known gap: staleness is only noticed once a late pong has arrived. A pong
that never arrives leaves the ping outstanding and nothing fires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

PING = {"op": "ping"}
PONG = '{"type": "pong"}'


class LivenessMonitor:
    """Periodic ping emitter and late-pong detector for one connection."""

    def __init__(
        self,
        send_ping: Callable[[], Awaitable[None]],
        on_stale: Callable[[], None],
        *,
        interval: float = 5.0,
        stale_timeout: float = 2.0,
        pong_window: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            send_ping: Coroutine function writing one ping frame
            on_stale: Called once when a stale round-trip is detected
            interval: Seconds between ticks
            stale_timeout: Round-trip above this is stale
            pong_window: A pong only counts if the last ping is younger than this
            clock: Time source in seconds
        """
        self._send_ping = send_ping
        self._on_stale = on_stale
        self.interval = interval
        self.stale_timeout = stale_timeout
        self.pong_window = pong_window
        self._clock = clock

        self.last_ping_at: Optional[float] = None
        self.last_pong_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        # a stale tick stops the monitor from inside its own task
        if task is not asyncio.current_task():
            task.cancel()

    def reset(self) -> None:
        self.last_ping_at = None
        self.last_pong_at = None

    def is_stale(self) -> bool:
        ping, pong = self.last_ping_at, self.last_pong_at
        return (
            ping is not None
            and pong is not None
            and pong > ping
            and pong - ping > self.stale_timeout
        )

    async def tick(self) -> bool:
        """
        Run one liveness check.

        Returns:
            False when the connection was declared stale, True otherwise
        """
        if self.is_stale():
            logger.error(
                "[FTX] did NOT receive pong in time, reconnecting "
                "(ping_at=%.3f, pong_at=%.3f)",
                self.last_ping_at,
                self.last_pong_at,
            )
            self._on_stale()
            return False

        self.last_ping_at = self._clock()
        await self._send_ping()
        return True

    def handle_frame(self, text: str) -> bool:
        """Consume ``text`` if it is a pong answering a recent ping."""
        if text != PONG or self.last_ping_at is None:
            return False
        now = self._clock()
        if now - self.last_ping_at >= self.pong_window:
            return False
        self.last_pong_at = now
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                alive = await self.tick()
            except Exception as e:
                logger.error("[FTX] Ping failed: %s", e)
                continue
            if not alive:
                return
