"""
Process-local bounded TTL cache.

Entries live in insertion order; when the cache is full, expired entries are
dropped first and then the oldest share of entries (evict_fraction) is evicted
to make room. There is no background timer: the host process calls
sweep_expired() on its own schedule.

Not synchronized beyond the atomicity of single dict operations. A race during
eviction can at worst drop an extra entry, which costs one extra upstream call.
"""

import logging
from typing import Generic, TypeVar

from orderdesk.cache.base import TTLCache
from orderdesk.config import CachePolicy
from orderdesk.models.cache import CacheEntry
from orderdesk.models.order import Order
from orderdesk.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

ValueT = TypeVar("ValueT")


class LocalTTLCache(TTLCache[str, ValueT], Generic[ValueT]):
    """In-memory TTL cache keyed by string with an optional capacity bound."""

    def __init__(self, policy: CachePolicy, clock: Clock = utcnow):
        super().__init__(policy, clock)
        self._entries: dict[str, CacheEntry[ValueT]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> CacheEntry[ValueT] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if not entry.is_valid(self._clock()):
            self._entries.pop(key, None)
            return None

        return entry

    def set(self, key: str, value: ValueT) -> bool:
        # Re-inserting moves the key to the newest position
        self._entries.pop(key, None)

        max_entries = self.policy.max_entries
        if max_entries is not None and len(self._entries) >= max_entries:
            self._make_room(max_entries)

        self._entries[key] = self._new_entry(key, value)
        return True

    def _make_room(self, max_entries: int):
        swept = self.sweep_expired()
        if len(self._entries) < max_entries:
            return

        evict_count = max(1, int(max_entries * self.policy.evict_fraction))
        for key in list(self._entries)[:evict_count]:
            self._entries.pop(key, None)

        logger.debug(
            "Local cache full: swept %s expired, evicted %s oldest entries",
            swept,
            evict_count,
        )

    def sweep_expired(self) -> int:
        now = self._clock()
        expired = [
            key for key, entry in list(self._entries.items()) if not entry.is_valid(now)
        ]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def clear(self):
        self._entries.clear()

    def stats(self) -> dict:
        """Cache size and keys, for monitoring."""
        return {"size": len(self._entries), "entries": list(self._entries)}


class LocalOrderCache(LocalTTLCache[Order]):
    """Mapped orders keyed by order number, for the synchronous lookup path."""
