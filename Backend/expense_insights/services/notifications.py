"""Change notification channel and the per-version analytics cache.

The analytics functions never require either of these; a cache only helps when
something publishes on the feed whenever claim data changes.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple

from expense_insights.config import ANALYTICS_CACHE_MAX_ENTRIES, ANALYTICS_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Dict[str, Any]], None]

CLAIMS_TOPIC = "expense_claims"


class ChangeFeed:
    """Topic-keyed publish/subscribe channel for "data changed" signals."""

    def __init__(self):
        self.listeners: Dict[str, List[ChangeListener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, listener: ChangeListener) -> Callable[[], None]:
        """Register `listener` for `topic` and return a function that removes it."""
        with self._lock:
            self.listeners.setdefault(topic, []).append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(topic, listener)

        return unsubscribe

    def unsubscribe(self, topic: str, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self.listeners.get(topic, []):
                self.listeners[topic].remove(listener)

    def publish(self, topic: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """Deliver to every listener of `topic`. Returns the number notified."""
        with self._lock:
            listeners = list(self.listeners.get(topic, []))
        delivered = 0
        for listener in listeners:
            try:
                listener(topic, payload or {})
                delivered += 1
            except Exception:
                logger.exception("Change listener failed for topic %s", topic)
        return delivered


class InsightCache:
    """
    Results keyed by (kind, key, data_version). Every change published on the
    feed bumps the version, so stale entries are simply never read again.

    Entries also expire after `ttl` seconds and the least recently used ones
    are evicted beyond `max_entries`, which bounds staleness when writes
    happen without a matching publish.
    """

    def __init__(
        self,
        feed: Optional[ChangeFeed] = None,
        topic: str = CLAIMS_TOPIC,
        ttl: float = ANALYTICS_CACHE_TTL_SECONDS,
        max_entries: int = ANALYTICS_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.data_version = 0
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, str, int], Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._unsubscribe = feed.subscribe(topic, self._on_change) if feed else None

    def _on_change(self, topic: str, payload: Dict[str, Any]) -> None:
        self.invalidate()

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self) -> None:
        with self._lock:
            self.data_version += 1
            self._entries.clear()
        logger.debug("Analytics cache invalidated (version %s)", self.data_version)

    def get_or_compute(self, kind: str, key: str, compute: Callable[[], Any]) -> Any:
        with self._lock:
            cache_key = (kind, key, self.data_version)
            hit = self._entries.get(cache_key)
            if hit is not None:
                stored_at, value = hit
                if self._clock() - stored_at < self.ttl:
                    self._entries.move_to_end(cache_key)
                    return value
                del self._entries[cache_key]
        value = compute()
        with self._lock:
            # Drop results computed against a version that changed meanwhile
            if cache_key[2] == self.data_version:
                self._entries[cache_key] = (self._clock(), value)
                self._entries.move_to_end(cache_key)
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)
        return value

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
