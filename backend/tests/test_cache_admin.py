"""Tests for cache administration: invalidation, expiry sweep, stats."""

import pytest

from app.services.cache_admin import CacheAdmin
from conftest import BUCKET


@pytest.mark.asyncio
async def test_invalidate_all_forces_refetch(listing_cache, cache_admin, storage):
    await listing_cache.get_all(BUCKET)
    assert cache_admin.invalidate_all() == 1

    await listing_cache.get_all(BUCKET)
    assert storage.fetch_full_listing.await_count == 2


def test_invalidate_all_is_idempotent(cache_admin):
    assert cache_admin.invalidate_all() == 0
    assert cache_admin.invalidate_all() == 0


@pytest.mark.asyncio
async def test_invalidate_by_path_clears_everything(listing_cache, cache_admin):
    await listing_cache.get_all("a")
    await listing_cache.get_all("b")

    cache_admin.invalidate("curr1/jan/", category="a")

    assert listing_cache.snapshots() == {}


@pytest.mark.asyncio
async def test_per_category_invalidation(listing_cache):
    admin = CacheAdmin(listing_cache, per_category=True)
    await listing_cache.get_all("a")
    await listing_cache.get_all("b")

    assert admin.invalidate("curr1/jan/", category="a") == 1
    assert set(listing_cache.snapshots()) == {"b"}

    # without a category the whole table goes
    admin.invalidate("curr1/")
    assert listing_cache.snapshots() == {}


@pytest.mark.asyncio
async def test_sweep_removes_only_expired(listing_cache, cache_admin, clock):
    await listing_cache.get_all("old")
    clock.advance(60)
    await listing_cache.get_all("new")
    clock.advance(50)  # old: 110s, new: 50s

    assert cache_admin.stats() == (2, 1)
    assert cache_admin.sweep_expired() == 1
    assert set(listing_cache.snapshots()) == {"new"}


@pytest.mark.asyncio
async def test_sweep_is_idempotent(listing_cache, cache_admin, clock):
    await listing_cache.get_all("a")
    await listing_cache.get_all("b")
    clock.advance(200)

    assert cache_admin.sweep_expired() == 2
    after_first = cache_admin.stats()
    assert cache_admin.sweep_expired() == 0
    assert cache_admin.stats() == after_first == (0, 0)


@pytest.mark.asyncio
async def test_stats_computed_at_call_time(listing_cache, cache_admin, clock):
    await listing_cache.get_all(BUCKET)
    stats = cache_admin.stats()
    assert stats.total_entries == 1
    assert stats.expired_entries == 0
    assert stats.active_entries == 1

    clock.advance(101)
    stats = cache_admin.stats()
    assert stats.expired_entries == 1
    assert stats.active_entries == 0
