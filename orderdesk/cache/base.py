"""
Generic TTL cache interface.

The durable order cache and the process-local order cache are two
instantiations of this interface, differing in key type, TTL, capacity and
storage.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Generic, TypeVar

from orderdesk.config import CachePolicy
from orderdesk.models.cache import CacheEntry
from orderdesk.utils.clock import Clock, utcnow

KeyT = TypeVar("KeyT")
ValueT = TypeVar("ValueT")


class TTLCache(ABC, Generic[KeyT, ValueT]):
    """
    Cache whose entries go stale after a fixed TTL.

    get() never returns an entry with expires_at <= now; an expired entry and
    a missing one are the same miss.
    """

    def __init__(self, policy: CachePolicy, clock: Clock = utcnow):
        self.policy = policy
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.policy.ttl_seconds)

    def _new_entry(self, key: KeyT, value: ValueT) -> CacheEntry[ValueT]:
        now = self._clock()
        return CacheEntry(
            key=str(key),
            value=value,
            fetched_at=now,
            expires_at=now + self.ttl,
        )

    @abstractmethod
    def get(self, key: KeyT) -> CacheEntry[ValueT] | None:
        """Return the entry for key if it has not expired."""
        pass

    @abstractmethod
    def set(self, key: KeyT, value: ValueT) -> bool:
        """Store value under key for one TTL; returns False if it could not be stored."""
        pass

    @abstractmethod
    def sweep_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        pass
