"""
Source cache gateway.

Read-through cache in front of a live source, backed by the raw_posts store:

    1. fresh cache   stored items for the topic fetched within CACHE_TTL_HOURS
    2. live          source variants in order; success writes through to the store
    3. stale         the most recent STALE_FALLBACK_LIMIT stored items, any age
    4. empty         []

Cache reads never write. Every live success is upserted keyed by external id.
"""

from datetime import timedelta
from typing import Callable, List

from ideagen.config import CACHE_TTL_HOURS, STALE_FALLBACK_LIMIT
from ideagen.errors import PersistenceFailure, SourceUnavailable
from ideagen.models import SourceItem
from ideagen.sources.base import LiveFetch, Source
from ideagen.storage import Storage
from ideagen.utils import utc_now


class SourceCacheGateway:
    """
    Resolves a topic to source items via cache, live source, then stale data.

    Args:
        store: Storage backend holding raw posts.
        source: Live (or mock) source.
        ttl_hours: Freshness window for the cache. Defaults to CACHE_TTL_HOURS.
        stale_limit: Maximum items returned by the stale fallback.
        clock: Returns the current aware UTC time; injectable for tests.
        verbose: Print cache decisions.
    """

    def __init__(
        self,
        store: Storage,
        source: Source,
        ttl_hours: float = None,
        stale_limit: int = None,
        clock: Callable = utc_now,
        verbose: bool = False,
    ):
        self.store = store
        self.source = source
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else CACHE_TTL_HOURS)
        self.stale_limit = stale_limit if stale_limit is not None else STALE_FALLBACK_LIMIT
        self.clock = clock
        self.verbose = verbose

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[gateway] {message}")

    def fetch(self, topic: str) -> List[SourceItem]:
        """
        Return source items for a normalized topic.

        Returns:
            Fresh cached items, live items, stale items, or [].

        Raises:
            SourceUnavailable: If every live variant was malformed (or the
                source itself is unavailable) and nothing is stored, or if the
                store cannot be read for the stale fallback.
        """
        now = self.clock()

        # 1. Fresh cache
        try:
            cached = self.store.get_source_items(topic, since=now - self.ttl)
        except PersistenceFailure as e:
            print(f"[gateway] Cache read failed for r/{topic}, going live: {e}")
            cached = []

        if cached:
            self._log(f"Cache hit for r/{topic}: {len(cached)} items")
            return cached

        # 2. Live
        unavailable = None
        try:
            live = self.source.fetch_live(topic)
        except SourceUnavailable as e:
            print(f"[gateway] {self.source.name} unavailable: {e}")
            unavailable = e
            live = LiveFetch()

        if live.succeeded:
            self._write_through(topic, live.items, now)
            self._log(f"Live fetch for r/{topic} via '{live.variant}': {len(live.items)} items")
            return live.items

        # 3. Stale fallback
        self._log(f"Live fetch for r/{topic} failed ({'; '.join(live.attempts) or 'no attempts'})")
        try:
            stale = self.store.get_source_items(topic, limit=self.stale_limit)
        except PersistenceFailure as e:
            raise SourceUnavailable(
                f"Live fetch failed and stored posts for r/{topic} could not be read: {e}"
            ) from e

        if stale:
            print(f"[gateway] Serving {len(stale)} stale posts for r/{topic}")
            return stale

        # 4. Nothing anywhere
        if unavailable is not None:
            raise unavailable
        if live.all_malformed:
            raise SourceUnavailable(
                f"Every listing for r/{topic} was malformed and no posts are stored"
            )

        self._log(f"No posts for r/{topic}")
        return []

    def _write_through(self, topic: str, items: List[SourceItem], now) -> None:
        for item in items:
            item.fetched_at = now

        try:
            result = self.store.upsert_source_items(items)
        except PersistenceFailure as e:
            print(f"[gateway] Failed to cache posts for r/{topic}: {e}")
            return

        if result.failed:
            print(f"[gateway] {result.failed} posts for r/{topic} not cached: {'; '.join(result.errors)}")
        self._log(f"Cached r/{topic}: {result}")
