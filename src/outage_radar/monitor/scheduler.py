"""Background refresh loop with an explicit start/stop state machine."""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import StrEnum
from typing import Optional

from outage_radar.errors import SchedulerAlreadyRunning
from outage_radar.events.emitter import CRITICAL, REFRESHED, EventEmitter
from outage_radar.monitor.orchestrator import StatusOrchestrator
from outage_radar.registry.models import AggregateReport

logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class SchedulerHandle:
    """One recurring job: its trigger task plus the token that stops it."""

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def bind(self, task: asyncio.Task[None]) -> None:
        self._task = task

    async def wait(self, timeout: float) -> bool:
        """Sleep up to *timeout*; True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    def cancel(self) -> None:
        self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()


class StatusScheduler:
    """Runs the orchestrator over the whole catalogue on a fixed interval.

    At most one recurring job exists at a time: ``start`` while running
    replaces the current job, ``stop`` while idle does nothing. Stopping
    cancels only the trigger loop; ticks already dispatched finish and
    still populate the cache.
    """

    def __init__(
        self,
        orchestrator: StatusOrchestrator,
        emitter: EventEmitter | None = None,
        critical_threshold: int = 0,
        run_on_start: bool = True,
    ) -> None:
        self._orchestrator = orchestrator
        self._emitter = emitter
        self._critical_threshold = critical_threshold
        self._run_on_start = run_on_start
        self._handle: Optional[SchedulerHandle] = None
        self._state_lock = threading.Lock()
        self._inflight: set[asyncio.Task[None]] = set()
        self.last_report: Optional[AggregateReport] = None
        self.tick_count = 0

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            if self._handle is not None and not self._handle.stop_requested:
                return SchedulerState.RUNNING
            return SchedulerState.IDLE

    def _register(self, handle: SchedulerHandle) -> None:
        if self._handle is not None:
            raise SchedulerAlreadyRunning(f"A job with interval {self._handle.interval}s is registered")
        self._handle = handle

    def start(self, interval: float) -> SchedulerHandle:
        """Register the recurring job. Must be called from within a running event loop."""
        if interval <= 0:
            raise ValueError("Scheduler interval must be positive")
        loop = asyncio.get_running_loop()
        handle = SchedulerHandle(interval)
        with self._state_lock:
            try:
                self._register(handle)
            except SchedulerAlreadyRunning:
                logger.info("Scheduler already running; replacing the existing job")
                self._cancel_locked()
                self._register(handle)
            handle.bind(loop.create_task(self._loop(handle), name="status-scheduler"))
        logger.info("Scheduler started (every %.0fs)", interval)
        return handle

    def stop(self) -> None:
        with self._state_lock:
            if self._handle is None:
                return
            self._cancel_locked()
        logger.info("Scheduler stopped")

    def _cancel_locked(self) -> None:
        assert self._handle is not None
        self._handle.cancel()
        self._handle = None

    async def _loop(self, handle: SchedulerHandle) -> None:
        if not self._run_on_start and await handle.wait(handle.interval):
            return
        while not handle.stop_requested:
            self._dispatch_tick()
            if await handle.wait(handle.interval):
                return

    def _dispatch_tick(self) -> None:
        task = asyncio.get_running_loop().create_task(self._tick(), name="status-tick")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("Scheduler tick failed")

    async def drain(self) -> None:
        """Wait for ticks already dispatched to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def run_once(self) -> AggregateReport:
        """Execute one tick: refresh every service and alert on critical findings."""
        self.tick_count += 1
        report = await self._orchestrator.get_aggregate(refresh=True)
        self.last_report = report
        logger.info(
            "Tick %d: %d checked, %d with issues, %d unknown",
            self.tick_count,
            report.total_checked,
            report.problem_count,
            report.unknown_or_error_count,
        )
        await self._emit(REFRESHED, {
            "total_checked": report.total_checked,
            "problems": report.problem_count,
            "unknown_or_error": report.unknown_or_error_count,
        })
        if report.down_count > self._critical_threshold:
            logger.warning("%d services down (threshold %d); alerting", report.down_count, self._critical_threshold)
            await self._emit(CRITICAL, {
                "level": "CRITICAL",
                "down": report.down_count,
                "threshold": self._critical_threshold,
                "report": report.to_dict(),
            })
        return report

    async def _emit(self, event_type: str, data: dict[str, object]) -> None:
        if self._emitter is not None:
            await self._emitter.publish(event_type, data)
