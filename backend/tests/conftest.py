"""Test fixtures — fake storage worker, controllable clock, FastAPI test client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_cache_admin, get_listing_cache, get_storage_client
from app.main import create_app
from app.services.cache_admin import CacheAdmin
from app.services.listing_cache import ListingCache
from app.services.storage_client import ObjectRecord

BUCKET = "reengki"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def make_records(*keys: str, category: str = BUCKET) -> list[ObjectRecord]:
    return [ObjectRecord(key=key, category=category, size=10) for key in keys]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    """Stand-in for StorageClient; listing holds a small curriculum tree."""
    storage = MagicMock()
    storage.default_bucket = BUCKET
    storage.file_url.side_effect = lambda key: f"https://files.test/file?key={key}"
    storage.fetch_full_listing = AsyncMock(
        return_value=make_records(
            "curr1/jan/cover.png",
            "curr1/jan/video.mp4",
            "curr1/feb/cover.png",
            "curr2/mar/video.mp4",
            "readme.txt",
        )
    )
    storage.upload_files = AsyncMock(return_value=[])
    storage.delete_file = AsyncMock(return_value=True)
    storage.download_file = AsyncMock(return_value=(b"", "application/octet-stream"))
    return storage


@pytest.fixture
def listing_cache(storage, clock):
    return ListingCache(storage, ttl_seconds=100.0, refresh_ratio=0.8, clock=clock)


@pytest.fixture
def cache_admin(listing_cache):
    return CacheAdmin(listing_cache)


@pytest_asyncio.fixture
async def client(storage, listing_cache, cache_admin):
    """Async test client with service dependencies overridden."""
    app = create_app()

    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_listing_cache] = lambda: listing_cache
    app.dependency_overrides[get_cache_admin] = lambda: cache_admin

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    await listing_cache.aclose()
