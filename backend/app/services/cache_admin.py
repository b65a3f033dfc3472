"""Administrative control of the listing cache: invalidation, sweep, stats."""

from __future__ import annotations

import logging
from typing import NamedTuple

from app.services.listing_cache import ListingCache

logger = logging.getLogger(__name__)


class CacheStats(NamedTuple):
    total_entries: int
    expired_entries: int

    @property
    def active_entries(self) -> int:
        return self.total_entries - self.expired_entries


class CacheAdmin:
    """Invalidation and housekeeping over a ListingCache."""

    def __init__(self, cache: ListingCache, per_category: bool = False):
        self._cache = cache
        self._per_category = per_category

    def invalidate_all(self) -> int:
        """Clear every entry; the next get_all for any category refetches."""
        removed = self._cache.clear()
        logger.info("Listing cache cleared (%d entries)", removed)
        return removed

    def invalidate(self, path_hint: str = "", category: str | None = None) -> int:
        """Invalidate after a mutation under ``path_hint``.

        A single flat listing backs every folder view, so a sub-path cannot
        be invalidated on its own. The whole table is cleared unless
        per-category invalidation is enabled and ``category`` is given.
        """
        if self._per_category and category:
            removed = int(self._cache.discard(category))
            logger.info("Listing cache invalidated for %s (path %r)", category, path_hint)
            return removed
        logger.debug("Invalidating listing cache for path %r", path_hint)
        return self.invalidate_all()

    def sweep_expired(self) -> int:
        """Remove expired snapshots without replacing them."""
        now = self._cache.now()
        removed = 0
        for category, snapshot in self._cache.snapshots().items():
            if snapshot.is_expired(now) and self._cache.evict(category, snapshot):
                removed += 1
        if removed:
            logger.info("Swept %d expired listing snapshots", removed)
        return removed

    def stats(self) -> CacheStats:
        now = self._cache.now()
        snapshots = self._cache.snapshots().values()
        return CacheStats(
            total_entries=len(snapshots),
            expired_entries=sum(1 for s in snapshots if s.is_expired(now)),
        )
