"""In-memory full-listing cache in front of the storage worker.

One immutable snapshot per category (bucket). Snapshots expire after a TTL
computed at read time. Once a snapshot is older than ``refresh_ratio * ttl``
the next read still returns it, but also spawns a single background refresh
so warmed callers never wait on the upstream listing.

Two concurrent misses for the same category may both hit upstream; the
install that finishes last wins. Invalidation bumps a generation counter so a
fetch that started before a mutation never installs pre-mutation data.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from app.services.storage_client import ObjectRecord, StorageError

if TYPE_CHECKING:
    from app.services.storage_client import StorageClient

logger = logging.getLogger(__name__)

DEFAULT_TTL = 1800.0  # seconds
DEFAULT_REFRESH_RATIO = 0.8


@dataclass(frozen=True)
class ListingSnapshot:
    category: str
    records: tuple[ObjectRecord, ...]
    created_at: float  # cache clock seconds
    ttl: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl

    def needs_refresh(self, now: float, ratio: float) -> bool:
        """Past the pre-refresh threshold but still valid."""
        return not self.is_expired(now) and self.age(now) > self.ttl * ratio


class ListingCache:
    """Per-category snapshot table with TTL and background pre-refresh."""

    def __init__(
        self,
        client: StorageClient,
        ttl_seconds: float = DEFAULT_TTL,
        refresh_ratio: float = DEFAULT_REFRESH_RATIO,
        clock: Callable[[], float] | None = None,
    ):
        self._client = client
        self._ttl = ttl_seconds
        self._refresh_ratio = refresh_ratio
        self._clock = clock or time.monotonic
        self._entries: dict[str, ListingSnapshot] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._refreshing: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._generation = 0  # bumped by clear()
        self._category_generations: dict[str, int] = {}  # bumped by discard()
        self._pending: dict[str, int] = {}  # fetches in flight per category

    @property
    def ttl(self) -> float:
        return self._ttl

    def now(self) -> float:
        return self._clock()

    def _lock_for(self, category: str) -> asyncio.Lock:
        lock = self._locks.get(category)
        if lock is None:
            lock = self._locks[category] = asyncio.Lock()
        return lock

    def _token(self, category: str) -> tuple[int, int]:
        return self._generation, self._category_generations.get(category, 0)

    def _begin_fetch(self, category: str) -> tuple[int, int]:
        self._pending[category] = self._pending.get(category, 0) + 1
        return self._token(category)

    def _end_fetch(self, category: str) -> None:
        remaining = self._pending.get(category, 1) - 1
        if remaining > 0:
            self._pending[category] = remaining
        else:
            self._pending.pop(category, None)
            self._forget_if_idle(category)

    def _forget_if_idle(self, category: str) -> None:
        """Drop lock and generation of a category with no entry and no fetch.

        A generation only has to outlive the fetches that captured it, so
        categories seen once (e.g. an arbitrary ``?bucket=``) leave nothing behind.
        """
        if category in self._entries or category in self._pending:
            return
        lock = self._locks.get(category)
        if lock is not None and lock.locked():
            return
        self._locks.pop(category, None)
        self._category_generations.pop(category, None)

    def tracked_categories(self) -> set[str]:
        """Categories with any per-category state (entry, lock or generation)."""
        return set(self._entries) | set(self._locks) | set(self._category_generations)

    async def get_all(self, category: str) -> ListingSnapshot:
        """Snapshot for ``category`` — cached when valid, fetched otherwise.

        Raises StorageError only when no snapshot at all is held for the
        category; an expired one is served stale if the refetch fails.
        """
        now = self._clock()
        snapshot = self._entries.get(category)

        if snapshot is not None and not snapshot.is_expired(now):
            if snapshot.needs_refresh(now, self._refresh_ratio):
                self._schedule_refresh(category)
            return snapshot

        token = self._begin_fetch(category)
        try:
            try:
                records = await self._client.fetch_full_listing(category)
            except StorageError as exc:
                if snapshot is not None:
                    logger.warning(
                        "Listing refetch for %s failed, serving stale snapshot (age %.0fs): %s",
                        category, snapshot.age(now), exc,
                    )
                    return snapshot
                logger.error("Listing fetch for %s failed: %s", category, exc)
                raise
            return await self._install(category, records, token)
        finally:
            self._end_fetch(category)

    def peek(self, category: str) -> ListingSnapshot | None:
        """Held snapshot, valid or not, without any I/O."""
        return self._entries.get(category)

    async def _install(
        self, category: str, records: Iterable[ObjectRecord], token: tuple[int, int]
    ) -> ListingSnapshot:
        snapshot = ListingSnapshot(
            category=category,
            records=tuple(records),
            created_at=self._clock(),
            ttl=self._ttl,
        )
        async with self._lock_for(category):
            if token == self._token(category):
                self._entries[category] = snapshot
                logger.info("Cached %d records for %s", len(snapshot.records), category)
            else:
                logger.debug("Discarding %s listing fetched before invalidation", category)
        return snapshot

    def _schedule_refresh(self, category: str) -> None:
        if category in self._refreshing:
            return
        self._refreshing.add(category)
        task = asyncio.create_task(self._refresh(category), name=f"listing-refresh:{category}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Background refresh scheduled for %s", category)

    async def _refresh(self, category: str) -> None:
        token = self._begin_fetch(category)
        try:
            records = await self._client.fetch_full_listing(category)
            await self._install(category, records, token)
        except Exception as e:
            logger.warning("Background refresh for %s failed: %s", category, e)
        finally:
            self._refreshing.discard(category)
            self._end_fetch(category)

    def is_refreshing(self, category: str) -> bool:
        return category in self._refreshing

    async def wait_for_refreshes(self) -> None:
        """Block until in-flight background refreshes settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background refreshes (shutdown)."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        self._refreshing.clear()

    # --- admin primitives (used by CacheAdmin) ---

    def snapshots(self) -> dict[str, ListingSnapshot]:
        return dict(self._entries)

    def discard(self, category: str) -> bool:
        """Invalidate one category. Returns True if an entry was removed."""
        self._category_generations[category] = self._category_generations.get(category, 0) + 1
        removed = self._entries.pop(category, None) is not None
        self._forget_if_idle(category)
        return removed

    def evict(self, category: str, snapshot: ListingSnapshot) -> bool:
        """Drop ``snapshot`` if it is still the held entry (expiry sweep)."""
        if self._entries.get(category) is snapshot:
            del self._entries[category]
            self._forget_if_idle(category)
            return True
        return False

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        self._generation += 1
        count = len(self._entries)
        self._entries.clear()
        for category in list(self._locks) + list(self._category_generations):
            self._forget_if_idle(category)
        return count
