"""
Synchronous order lookup.

Used by interactive, user-waiting code paths. Lookups by order number are
served from the process-local cache when possible and otherwise go straight
to the order API. Rate limiting is reported as "no data yet" rather than as an
error; any other upstream error reaches the caller.
"""

import logging

from orderdesk.cache.local import LocalOrderCache
from orderdesk.clients.order_api import ExternalOrderClient
from orderdesk.config import Settings
from orderdesk.errors import RateLimitError
from orderdesk.models.order import Order, map_raw_order

logger = logging.getLogger(__name__)


class OrderLookupService:
    """Cache-first order lookups against the order API."""

    def __init__(self, client: ExternalOrderClient, cache: LocalOrderCache):
        self.client = client
        self.cache = cache

    def get_order_by_number(self, order_number: str) -> Order | None:
        """
        Get an order by order number.

        Args:
            order_number: Customer-facing order number

        Returns:
            Order, or None if it does not exist or the API is rate limiting

        Raises:
            ExternalApiError: On upstream failures other than rate limiting
        """
        cached = self.cache.get(order_number)
        if cached is not None:
            logger.info("Cache hit for order: %s", order_number)
            return cached.value

        try:
            raw_order = self.client.get_order_by_number(order_number)
        except RateLimitError:
            logger.warning("Rate limit hit looking up order %s, returning None", order_number)
            return None

        if raw_order is None:
            return None

        order = map_raw_order(raw_order)
        self.cache.set(order_number, order)
        logger.info("Order cached: %s", order_number)
        return order

    def get_orders_by_email(self, email: str, limit: int = 10) -> list[Order]:
        """
        Get a customer's orders by email. Results are not cached.

        Args:
            email: Customer email (display name allowed)
            limit: Maximum orders to return

        Returns:
            Orders, most recent first; empty when the API is rate limiting

        Raises:
            ExternalApiError: On upstream failures other than rate limiting
        """
        try:
            raw_orders = self.client.get_orders_by_email(email, limit)
        except RateLimitError:
            logger.warning("Rate limit hit looking up orders by email, returning []")
            return []

        return [map_raw_order(raw_order) for raw_order in raw_orders]

    def sweep_cache(self) -> int:
        """Drop expired local cache entries."""
        return self.cache.sweep_expired()

    def clear_cache(self):
        self.cache.clear()
        logger.info("Order cache cleared")

    def cache_stats(self) -> dict:
        return self.cache.stats()


def build_order_lookup_service(
    settings: Settings, client: ExternalOrderClient
) -> OrderLookupService:
    """Build the lookup service once at process startup."""
    return OrderLookupService(client=client, cache=LocalOrderCache(settings.local_cache))
