"""In-process scheduler that triggers the plant and alert syncs on a fixed cadence."""

import asyncio
from datetime import datetime

import structlog
from sqlalchemy import Engine

from solarsync.config.settings import Settings
from solarsync.sync.alerts import AlertSyncService
from solarsync.sync.context import SyncContext
from solarsync.sync.plants import PlantSyncService
from solarsync.sync.schedule import is_interval_boundary, is_sync_restricted, local_now
from solarsync.vendors.registry import VendorRegistry, create_default_registry

logger = structlog.get_logger(__name__)


class SyncScheduler:
    """Background task that runs the sync jobs on interval boundaries.

    The loop wakes every ``scheduler_poll_seconds`` and fires at most once per
    boundary minute. Plant sync is skipped inside the restricted window;
    alert sync runs around the clock.
    """

    def __init__(
        self,
        engine: Engine,
        settings: Settings,
        registry: VendorRegistry | None = None,
    ) -> None:
        registry = registry or create_default_registry()
        self.settings = settings
        self.plant_service = PlantSyncService(engine, settings, registry)
        self.alert_service = AlertSyncService(engine, settings, registry)
        self._running = False
        self._task: asyncio.Task | None = None
        self._last_run_minute: str | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._schedule_loop())
        logger.info(
            "Started sync scheduler",
            interval_minutes=self.settings.scheduler_interval_minutes,
            timezone=self.settings.sync_timezone,
        )

    async def stop(self) -> None:
        """Stop the scheduler loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Stopped sync scheduler")

    async def _schedule_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception as e:
                logger.error("Scheduler loop error", error=str(e))
            await asyncio.sleep(self.settings.scheduler_poll_seconds)

    async def tick(self, now: datetime | None = None) -> list[str]:
        """Run whatever is due at ``now``.

        Args:
            now: Current time, for tests.

        Returns:
            Names of the jobs that ran.
        """
        local = local_now(self.settings.sync_timezone, now)
        minute_key = local.strftime("%Y-%m-%d %H:%M")

        if not is_interval_boundary(local, self.settings.scheduler_interval_minutes):
            self._last_run_minute = None
            return []
        if self._last_run_minute == minute_key:
            return []
        self._last_run_minute = minute_key

        ran: list[str] = []
        if await self.run_plant_sync(now):
            ran.append("plants")
        if await self.run_alert_sync(now):
            ran.append("alerts")
        return ran

    async def run_plant_sync(self, now: datetime | None = None) -> bool:
        """Scheduled plant sync; returns False when disabled or restricted."""
        if not self.settings.enable_plant_sync_cron:
            logger.debug("Plant sync cron is disabled")
            return False
        if is_sync_restricted(self.settings, now):
            logger.info(
                "Plant sync skipped inside restricted window",
                window_start=self.settings.sync_window_start,
                window_end=self.settings.sync_window_end,
            )
            return False

        try:
            summary = await self.plant_service.sync_all(
                SyncContext.for_cron(self.plant_service.operation), now=now
            )
        except Exception as e:
            logger.error("Scheduled plant sync failed", error=str(e))
            return True
        logger.info(
            "Scheduled plant sync finished",
            successful=summary.successful,
            total_vendors=summary.total_vendors,
        )
        return True

    async def run_alert_sync(self, now: datetime | None = None) -> bool:
        """Scheduled alert sync; returns False when disabled."""
        if not self.settings.enable_alert_sync_cron:
            logger.debug("Alert sync cron is disabled")
            return False

        try:
            summary = await self.alert_service.sync_all(
                SyncContext.for_cron(self.alert_service.operation), now=now
            )
        except Exception as e:
            logger.error("Scheduled alert sync failed", error=str(e))
            return True
        logger.info(
            "Scheduled alert sync finished",
            successful=summary.successful,
            total_vendors=summary.total_vendors,
        )
        return True
