"""
Durable order cache shared by all processes.

Raw order payloads are stored per correlation id (for example a mail id) so
that request handlers can show enrichment results produced by background
workers. Storage failures are logged and reported as a miss / failed write.
"""

import logging
from typing import Any, Callable

from orderdesk.cache.base import TTLCache
from orderdesk.config import CachePolicy
from orderdesk.db.unit_of_work import UnitOfWork
from orderdesk.errors import StorageError
from orderdesk.models.cache import CacheEntry, OrderSnapshot
from orderdesk.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class OrderCache(TTLCache[str, OrderSnapshot]):
    """TTL cache of raw order payloads keyed by correlation id, backed by order_cache."""

    def __init__(
        self,
        policy: CachePolicy | None = None,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        clock: Clock = utcnow,
    ):
        super().__init__(policy or CachePolicy(ttl_seconds=15 * 60), clock)
        self._uow_factory = uow_factory

    def get(self, key: str) -> CacheEntry[OrderSnapshot] | None:
        try:
            with self._uow_factory() as uow:
                entry = uow.order_cache.get_valid(key, self._clock())
        except StorageError as e:
            logger.error("Failed to read cached order for %s: %s", key, e)
            return None

        if entry is not None:
            logger.info("Cache hit for correlation id: %s", key)
        return entry

    def set(self, key: str, value: OrderSnapshot) -> bool:
        entry = self._new_entry(key, value)
        try:
            with self._uow_factory() as uow:
                uow.order_cache.upsert(entry)
                uow.commit()
        except StorageError as e:
            logger.error("Failed to cache order %s for %s: %s", value.order_number, key, e)
            return False

        logger.info("Order cached: %s for correlation id: %s", value.order_number, key)
        return True

    def put(self, correlation_id: str, order_number: str, raw_payload: dict[str, Any]) -> bool:
        """
        Store a raw order payload for a correlation id.

        Repeated puts refresh the entry (last write wins).

        Returns:
            True if stored
        """
        return self.set(
            correlation_id,
            OrderSnapshot(order_number=order_number, order_data=raw_payload),
        )

    def sweep_expired(self) -> int:
        try:
            with self._uow_factory() as uow:
                deleted = uow.order_cache.delete_expired(self._clock())
                uow.commit()
        except StorageError as e:
            logger.error("Failed to sweep order cache: %s", e)
            return 0

        return deleted
