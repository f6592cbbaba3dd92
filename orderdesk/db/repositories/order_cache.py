"""
Order cache repository for database operations.

Stores raw order payloads per correlation id with an expiry timestamp.
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Table, delete, select

from orderdesk.db.repositories.base import BaseRepository, as_utc
from orderdesk.db.tables import order_cache
from orderdesk.models.cache import CacheEntry, OrderSnapshot


class OrderCacheRepository(BaseRepository[CacheEntry[OrderSnapshot]]):
    """Repository for durable order cache entries."""

    @property
    def table(self) -> Table:
        return order_cache

    def _row_to_model(self, row: Any) -> CacheEntry[OrderSnapshot]:
        """Convert database row to CacheEntry model."""
        return CacheEntry[OrderSnapshot](
            key=row.correlation_id,
            value=OrderSnapshot(
                order_number=row.order_number,
                order_data=row.order_data or {},
            ),
            fetched_at=as_utc(row.fetched_at),
            expires_at=as_utc(row.expires_at),
        )

    def _model_to_dict(self, model: CacheEntry[OrderSnapshot]) -> dict:
        """Convert CacheEntry model to database dict."""
        return {
            "id": uuid4(),
            "correlation_id": model.key,
            "order_number": model.value.order_number,
            "order_data": model.value.order_data,
            "fetched_at": model.fetched_at,
            "expires_at": model.expires_at,
            "created_at": model.fetched_at,
            "updated_at": model.fetched_at,
        }

    def get_valid(self, correlation_id: str, now: datetime) -> CacheEntry[OrderSnapshot] | None:
        """
        Get a non-expired entry by correlation id.

        Args:
            correlation_id: Cache key
            now: Current time

        Returns:
            CacheEntry or None if absent or expired
        """
        stmt = select(self.table).where(
            self.table.c.correlation_id == correlation_id,
            self.table.c.expires_at > now,
        )
        row = self.session.execute(stmt).fetchone()

        if row is None:
            return None

        return self._row_to_model(row)

    def upsert(self, entry: CacheEntry[OrderSnapshot]) -> CacheEntry[OrderSnapshot]:
        """
        Insert or overwrite the entry for its correlation id.

        Last write wins; there is no versioning.

        Args:
            entry: Entry to store

        Returns:
            Stored entry
        """
        data = self._model_to_dict(entry)

        # ON CONFLICT (correlation_id) DO UPDATE
        stmt = self._insert().values(**data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["correlation_id"],
            set_={
                "order_number": stmt.excluded.order_number,
                "order_data": stmt.excluded.order_data,
                "fetched_at": stmt.excluded.fetched_at,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(self.table)

        row = self.session.execute(stmt).fetchone()
        return self._row_to_model(row)

    def delete_expired(self, now: datetime) -> int:
        """
        Delete entries that expired at or before now.

        Returns:
            Number of deleted entries
        """
        stmt = delete(self.table).where(self.table.c.expires_at <= now)
        return self.session.execute(stmt).rowcount
