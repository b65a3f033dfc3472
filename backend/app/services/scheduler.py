"""APScheduler-based background job sweeping expired listing snapshots."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from app.services.cache_admin import CacheAdmin

logger = logging.getLogger(__name__)


class CacheSweepScheduler:
    """Periodically reclaims memory held by expired snapshots."""

    def __init__(self, cache_admin: CacheAdmin, interval_seconds: int):
        self._admin = cache_admin
        self._interval = interval_seconds
        self._scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1}
        )

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Register the sweep job and start the scheduler."""
        if self._interval <= 0:
            logger.info("Cache sweep disabled (interval=%d)", self._interval)
            return

        self._scheduler.add_job(
            self._sweep,
            "interval",
            seconds=self._interval,
            id="sweep_listing_cache",
            name="Sweep expired listing snapshots",
        )
        self._scheduler.start()
        logger.info("Cache sweep scheduler started — every %ds", self._interval)

    async def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Cache sweep scheduler stopped")

    async def _sweep(self) -> None:
        try:
            removed = self._admin.sweep_expired()
            if removed:
                logger.debug("Sweep removed %d snapshots", removed)
        except Exception as e:
            logger.error("Cache sweep failed: %s", e)
