"""Periodic pings keeping a remote session from idling out."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from rn_tape.devices.base import FaultHandler
from rn_tape.errors import UnexpectedFault

log = logging.getLogger(__name__)


class KeepAlive:
    """Calls ``ping`` every ``interval`` seconds until cancelled.

    A failing ping is reported to ``on_fault`` and stops the pinger.
    Cancelling is idempotent and safe when never started.
    """

    def __init__(
        self,
        ping: Callable[[], Awaitable[None]],
        *,
        interval: float,
        on_fault: FaultHandler,
    ) -> None:
        self.interval = interval
        self.pings = 0
        self._ping = ping
        self._on_fault = on_fault
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name="keep-alive")
        log.info("Keep-alive started (interval=%ss)", self.interval)

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log.info("Keep-alive stopped after %d ping(s)", self.pings)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._ping()
            except Exception as exc:
                log.error("Keep-alive ping failed: %s", exc)
                fault = UnexpectedFault(f"Keep-alive ping failed: {exc}")
                fault.__cause__ = exc
                self._on_fault(fault)
                return
            self.pings += 1
            log.debug("# Idle Ping")
