"""Tests for service construction and teardown."""

import pytest

from app.config import Settings
from app.services import build_services, shutdown_services, start_services


@pytest.mark.asyncio
async def test_build_and_shutdown():
    settings = Settings(
        _env_file=None,
        storage_bucket="archive",
        listing_cache_ttl_seconds=120,
        cache_sweep_interval_seconds=0,
    )
    services = build_services(settings)

    assert services.storage.default_bucket == "archive"
    assert services.listing_cache.ttl == 120
    assert services.storage._listing_deadline == 120.0
    assert services.cache_admin.stats() == (0, 0)

    await start_services(services)
    await shutdown_services(services)
    assert not services.sweeper.running
