"""
Tests for the durable order cache.

Runs OrderCache against a file-backed SQLite database with a fixed clock.
"""

from datetime import timedelta

import pytest

from orderdesk.cache.durable import OrderCache
from orderdesk.config import CachePolicy
from orderdesk.models.cache import OrderSnapshot

RAW_ORDER = {
    "id": "ord_1",
    "orderNumber": "4521",
    "status": "CREATED",
    "customer": {"email": "ayse@example.com", "firstName": "Ayşe", "lastName": "Yılmaz"},
}


@pytest.fixture
def cache(uow_factory, clock) -> OrderCache:
    return OrderCache(CachePolicy(ttl_seconds=900), uow_factory=uow_factory, clock=clock)


class TestPutGet:
    def test_put_then_get(self, cache: OrderCache, clock):
        assert cache.put("mail_1", "4521", RAW_ORDER) is True

        entry = cache.get("mail_1")
        assert entry is not None
        assert entry.key == "mail_1"
        assert entry.value == OrderSnapshot(order_number="4521", order_data=RAW_ORDER)
        assert entry.fetched_at == clock.now
        assert entry.expires_at == clock.now + timedelta(minutes=15)

    def test_missing_entry(self, cache: OrderCache):
        assert cache.get("mail_unknown") is None

    def test_entry_expires(self, cache: OrderCache, clock):
        cache.put("mail_1", "4521", RAW_ORDER)

        clock.advance(minutes=14, seconds=59)
        assert cache.get("mail_1") is not None

        clock.advance(seconds=1)
        assert cache.get("mail_1") is None

    def test_put_overwrites_and_refreshes(self, cache: OrderCache, clock):
        cache.put("mail_1", "4521", RAW_ORDER)
        clock.advance(minutes=10)

        updated = {**RAW_ORDER, "status": "FULFILLED"}
        cache.put("mail_1", "4521", updated)
        clock.advance(minutes=10)

        entry = cache.get("mail_1")
        assert entry is not None
        assert entry.value.order_data["status"] == "FULFILLED"

    def test_entries_are_per_correlation_id(self, cache: OrderCache):
        cache.put("mail_1", "4521", RAW_ORDER)
        cache.put("mail_2", "9999", {"orderNumber": "9999"})

        assert cache.get("mail_1").value.order_number == "4521"
        assert cache.get("mail_2").value.order_number == "9999"

    def test_default_policy(self, uow_factory):
        assert OrderCache(uow_factory=uow_factory).ttl == timedelta(minutes=15)


class TestSweep:
    def test_sweep_removes_expired_rows(self, cache: OrderCache, clock):
        cache.put("mail_1", "4521", RAW_ORDER)
        clock.advance(minutes=10)
        cache.put("mail_2", "9999", {"orderNumber": "9999"})
        clock.advance(minutes=5)

        assert cache.sweep_expired() == 1
        assert cache.get("mail_2") is not None


class TestStorageUnavailable:
    def test_degrades_to_miss(self, broken_uow_factory, clock):
        cache = OrderCache(uow_factory=broken_uow_factory, clock=clock)

        assert cache.put("mail_1", "4521", RAW_ORDER) is False
        assert cache.get("mail_1") is None
        assert cache.sweep_expired() == 0
