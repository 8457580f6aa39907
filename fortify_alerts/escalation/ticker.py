"""Background loop driving escalation ticks and the overdue sweep."""

from __future__ import annotations

import asyncio
import datetime

import structlog

from fortify_alerts.actions.manager import ActionItemManager
from fortify_alerts.alerts.types import TickReport
from fortify_alerts.core.clock import Clock, utcnow
from fortify_alerts.escalation.scheduler import AlertEscalationScheduler

logger = structlog.get_logger(__name__)


class EscalationTicker:
    """Calls ``scheduler.tick()`` on a fixed interval, and the overdue sweep
    on a slower one.

    Usage::

        ticker = EscalationTicker(scheduler, action_items, tick_interval_secs=60)
        await ticker.start()
        # ...
        await ticker.stop()

    Deployments driven by an external cron skip ``start()`` and call
    :meth:`run_once` directly.
    """

    def __init__(
        self,
        scheduler: AlertEscalationScheduler,
        action_items: ActionItemManager | None = None,
        tick_interval_secs: float = 60.0,
        sweep_interval_secs: float = 300.0,
        clock: Clock | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._action_items = action_items
        self._tick_interval = tick_interval_secs
        self._sweep_interval = datetime.timedelta(seconds=sweep_interval_secs)
        self._clock = clock or utcnow
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._last_sweep: datetime.datetime | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_once(self, now: datetime.datetime | None = None) -> TickReport:
        """One escalation tick, plus the overdue sweep when it is due."""
        now = now or self._clock()
        report = await self._scheduler.tick(now)
        if self._action_items is not None and self._sweep_due(now):
            await self._action_items.sweep_overdue(now)
            self._last_sweep = now
        return report

    def _sweep_due(self, now: datetime.datetime) -> bool:
        return self._last_sweep is None or now - self._last_sweep >= self._sweep_interval

    # ── Internal loop ───────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("escalation_loop_error")
            await asyncio.sleep(self._tick_interval)
