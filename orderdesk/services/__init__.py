"""
Application services.
"""

from orderdesk.services.order_lookup import OrderLookupService, build_order_lookup_service

__all__ = ["OrderLookupService", "build_order_lookup_service"]
