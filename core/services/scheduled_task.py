from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable


class ScheduledTask:
    """
    Cancellable handle for a job that runs repeatedly on a fixed cadence.

    The next run is scheduled only after the current one completes, so runs
    never overlap. `stop()` cancels a pending wait immediately but lets an
    in-flight run finish before returning.

    Usage:
        task = ScheduledTask(name="poller", job=uc.run_cycle, every_s=1.0, run_immediately=True)
        task.start()
        ...
        await task.stop()
    """

    def __init__(
        self,
        *,
        name: str,
        job: Callable[[], Awaitable[object]],
        every_s: float,
        run_immediately: bool = False,
        logger: logging.Logger | None = None,
    ):
        self._name = name
        self._job = job
        self._every_s = float(every_s)
        self._run_immediately = bool(run_immediately)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()
        self.runs = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop in background. No-op if already running."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=self._name)

    def request_stop(self) -> None:
        """Ask the loop to stop without waiting for it."""
        self._stop.set()

    async def stop(self) -> None:
        """
        Stop the loop and wait for an in-flight run. Safe to call multiple times.

        Cancelling the caller does not abort the in-flight run; the loop still
        exits on its own once that run completes.
        """
        self.request_stop()
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        self._task = None

    async def _run(self) -> None:
        if not self._run_immediately and await self._wait():
            return

        while not self._stop.is_set():
            try:
                await self._job()
            except Exception as exc:
                self._logger.exception("Scheduled job %s failed: %s", self._name, exc)
            self.runs += 1

            if await self._wait():
                return

    async def _wait(self) -> bool:
        """Sleep for one interval. Returns True if stop was requested meanwhile."""
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop.wait(), timeout=self._every_s)
        return self._stop.is_set()
