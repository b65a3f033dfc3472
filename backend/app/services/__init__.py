"""Business logic services — construction and teardown of the shared stack."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.config import Settings
from app.services.cache_admin import CacheAdmin
from app.services.listing_cache import ListingCache
from app.services.scheduler import CacheSweepScheduler
from app.services.storage_client import StorageClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Objects shared by every request handler (kept on ``app.state``)."""
    storage: StorageClient
    listing_cache: ListingCache
    cache_admin: CacheAdmin
    sweeper: CacheSweepScheduler


def build_services(settings: Settings) -> Services:
    """Create and wire up the storage client, listing cache and admin."""
    storage = StorageClient(
        base_url=settings.storage_api_url,
        default_bucket=settings.storage_bucket,
        public_url=settings.public_url,
        timeout=settings.storage_timeout_seconds,
        listing_deadline=settings.storage_listing_deadline_seconds,
    )
    cache = ListingCache(
        storage,
        ttl_seconds=settings.listing_cache_ttl_seconds,
        refresh_ratio=settings.listing_cache_refresh_ratio,
    )
    admin = CacheAdmin(cache, per_category=settings.cache_per_category_invalidation)
    sweeper = CacheSweepScheduler(admin, settings.cache_sweep_interval_seconds)
    return Services(storage=storage, listing_cache=cache, cache_admin=admin, sweeper=sweeper)


async def start_services(services: Services) -> None:
    services.sweeper.start()
    logger.info(
        "Services initialized (storage=%s, ttl=%.0fs)",
        services.storage.default_bucket, services.listing_cache.ttl,
    )


async def shutdown_services(services: Services) -> None:
    """Stop the sweep job and cancel background refreshes."""
    await services.sweeper.stop()
    await services.listing_cache.aclose()
