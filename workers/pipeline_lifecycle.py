# workers/pipeline_lifecycle.py
from __future__ import annotations

import asyncio
import functools
import logging
from enum import Enum
from typing import Callable, List

from core.services.scheduled_task import ScheduledTask
from core.services.subscriber_registry import SubscriberChannel, SubscriberRegistry
from core.usecases.flush_samples_use_case import FlushSamplesUseCase
from core.usecases.poll_prices_use_case import PollPricesUseCase
from core.usecases.record_snapshot_use_case import RecordSnapshotUseCase

TaskFactory = Callable[..., ScheduledTask]


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class PipelineLifecycle:
    """
    Runs background work only while at least one subscriber is connected.

    Transitions:
      - IDLE -> RUNNING on the 0 -> 1 subscriber edge:
          start the poll task (first cycle immediately), the flush task and the snapshot task.
      - RUNNING -> IDLE on the 1 -> 0 edge:
          stop the three tasks (a poll cycle waiting in backoff is abandoned),
          then a final flush of samples and a final snapshot.

    Extra connects while RUNNING and extra disconnects while IDLE are no-ops.

    The state flips synchronously, before the first await, so a caller that
    gets cancelled mid-transition cannot leave it out of step with the
    registry. Stopped tasks are kept in `_draining` until their final flush
    has run; the lock serializes draining and starting, and a start drains
    leftovers first, so poll cycles never overlap.
    """

    def __init__(
        self,
        *,
        registry: SubscriberRegistry,
        poll_uc: PollPricesUseCase,
        flush_uc: FlushSamplesUseCase,
        snapshot_uc: RecordSnapshotUseCase,
        poll_every_s: float,
        flush_every_s: float,
        snapshot_every_s: float,
        task_factory: TaskFactory = ScheduledTask,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._poll_uc = poll_uc
        self._flush_uc = flush_uc
        self._snapshot_uc = snapshot_uc
        self._poll_every_s = float(poll_every_s)
        self._flush_every_s = float(flush_every_s)
        self._snapshot_every_s = float(snapshot_every_s)
        self._task_factory = task_factory
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._state = PipelineState.IDLE
        self._closed = False
        self._tasks: List[ScheduledTask] = []
        self._draining: List[ScheduledTask] = []
        self._poll_stop = asyncio.Event()
        self._transition_lock = asyncio.Lock()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    async def connect(self, channel: SubscriberChannel) -> None:
        """
        Register a subscriber; starts the pipeline if it is the first one.
        The channel's close notification is wired to `disconnect`.

        If the call is cancelled, the channel is unregistered again.
        """
        channel.on_close(self.disconnect)
        self._registry.add(channel)
        try:
            await self._reconcile()
        except asyncio.CancelledError:
            self._registry.remove(channel)
            self._stop_if_unused()
            raise

    async def disconnect(self, channel: SubscriberChannel) -> None:
        """
        Unregister a subscriber; stops the pipeline if it was the last one.
        """
        self._registry.remove(channel)
        await self._reconcile()

    async def shutdown(self) -> None:
        """
        Process shutdown: stop and flush regardless of connected subscribers.
        The pipeline does not start again afterwards.
        """
        self._closed = True
        if self._state is PipelineState.RUNNING:
            self._begin_stop()
        async with self._transition_lock:
            if self._draining:
                await self._drain()

    async def _reconcile(self) -> None:
        if self._stop_if_unused():
            async with self._transition_lock:
                if self._draining:
                    await self._drain()
            return

        if self._wants_start():
            async with self._transition_lock:
                if self._draining:
                    await self._drain()
                # re-check: the registry may have changed while waiting for the lock
                if self._wants_start():
                    self._start_all()

    def _wants_start(self) -> bool:
        return not self._closed and len(self._registry) > 0 and self._state is PipelineState.IDLE

    def _stop_if_unused(self) -> bool:
        if len(self._registry) == 0 and self._state is PipelineState.RUNNING:
            self._begin_stop()
            return True
        return False

    def _start_all(self) -> None:
        self._logger.info("Starting all processes: fetching and DB saving...")
        self._poll_stop = asyncio.Event()
        self._tasks = [
            self._task_factory(
                name="price-poller",
                job=functools.partial(self._poll_uc.run_cycle, stop=self._poll_stop),
                every_s=self._poll_every_s,
                run_immediately=True,
            ),
            self._task_factory(
                name="sample-flusher",
                job=self._flush_uc.flush_now,
                every_s=self._flush_every_s,
            ),
            self._task_factory(
                name="minute-snapshot",
                job=self._snapshot_uc.flush_now,
                every_s=self._snapshot_every_s,
            ),
        ]
        for task in self._tasks:
            task.start()
        self._state = PipelineState.RUNNING

    def _begin_stop(self) -> None:
        self._logger.info("Stopping all processes...")
        self._poll_stop.set()
        for task in self._tasks:
            task.request_stop()
        self._draining.extend(self._tasks)
        self._tasks = []
        self._state = PipelineState.IDLE

    async def _drain(self) -> None:
        tasks = list(self._draining)
        await asyncio.gather(*(t.stop() for t in tasks))

        self._logger.info("Performing final batch save and minute snapshot on stop...")
        await self._flush_uc.flush_now()
        await self._snapshot_uc.flush_now()
        self._draining = [t for t in self._draining if t not in tasks]
