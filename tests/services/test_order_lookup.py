"""
Tests for the synchronous order lookup service.
"""

from unittest.mock import MagicMock

import pytest

from orderdesk.cache.local import LocalOrderCache
from orderdesk.config import CachePolicy, Settings
from orderdesk.errors import ExternalApiError, RateLimitError
from orderdesk.services.order_lookup import OrderLookupService, build_order_lookup_service

RAW_ORDER = {
    "id": "ord_1",
    "orderNumber": "4521",
    "status": "CREATED",
    "customer": {"email": "ayse@example.com", "firstName": "Ayşe", "lastName": "Yılmaz"},
    "netTotalFinalPrice": 540.0,
}


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.get_order_by_number.return_value = RAW_ORDER
    client.get_orders_by_email.return_value = [RAW_ORDER]
    return client


@pytest.fixture
def service(client: MagicMock, clock) -> OrderLookupService:
    cache = LocalOrderCache(CachePolicy(ttl_seconds=3600, max_entries=500), clock=clock)
    return OrderLookupService(client, cache)


class TestGetOrderByNumber:
    def test_cold_then_warm(self, service: OrderLookupService, client: MagicMock):
        """First lookup calls the API once; the second is served from cache"""
        first = service.get_order_by_number("4521")
        second = service.get_order_by_number("4521")

        assert first.order_number == "4521"
        assert first.customer_name == "Ayşe Yılmaz"
        assert second == first
        client.get_order_by_number.assert_called_once_with("4521")

    def test_refetch_after_ttl(self, service: OrderLookupService, client: MagicMock, clock):
        service.get_order_by_number("4521")
        clock.advance(hours=1)
        service.get_order_by_number("4521")

        assert client.get_order_by_number.call_count == 2

    def test_unknown_order_is_not_cached(self, service: OrderLookupService, client: MagicMock):
        client.get_order_by_number.return_value = None

        assert service.get_order_by_number("0000") is None
        assert service.get_order_by_number("0000") is None
        assert client.get_order_by_number.call_count == 2

    def test_rate_limit_returns_none(self, service: OrderLookupService, client: MagicMock):
        client.get_order_by_number.side_effect = RateLimitError()

        assert service.get_order_by_number("4521") is None
        assert service.cache_stats()["size"] == 0

    def test_other_errors_propagate(self, service: OrderLookupService, client: MagicMock):
        client.get_order_by_number.side_effect = ExternalApiError("Order API GraphQL failed")

        with pytest.raises(ExternalApiError):
            service.get_order_by_number("4521")


class TestGetOrdersByEmail:
    def test_maps_orders_without_caching(self, service: OrderLookupService, client: MagicMock):
        orders = service.get_orders_by_email("ayse@example.com", limit=5)
        service.get_orders_by_email("ayse@example.com", limit=5)

        assert [order.order_number for order in orders] == ["4521"]
        assert client.get_orders_by_email.call_count == 2
        client.get_orders_by_email.assert_called_with("ayse@example.com", 5)

    def test_rate_limit_returns_empty(self, service: OrderLookupService, client: MagicMock):
        client.get_orders_by_email.side_effect = RateLimitError()

        assert service.get_orders_by_email("ayse@example.com") == []


class TestCacheMaintenance:
    def test_sweep_and_clear(self, service: OrderLookupService, clock):
        service.get_order_by_number("4521")
        clock.advance(hours=2)

        assert service.sweep_cache() == 1

        service.get_order_by_number("4521")
        service.clear_cache()
        assert service.cache_stats() == {"size": 0, "entries": []}


def test_build_order_lookup_service_uses_local_cache_policy(client: MagicMock):
    settings = Settings(local_cache=CachePolicy(ttl_seconds=60, max_entries=2))

    service = build_order_lookup_service(settings, client)

    assert service.cache.policy.max_entries == 2
    assert service.client is client
