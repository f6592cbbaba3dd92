"""
Order caches: one generic TTL cache interface, instantiated as a durable
cache (per correlation id) and a process-local cache (per order number).
"""

from orderdesk.cache.base import TTLCache
from orderdesk.cache.durable import OrderCache
from orderdesk.cache.local import LocalOrderCache, LocalTTLCache

__all__ = [
    "LocalOrderCache",
    "LocalTTLCache",
    "OrderCache",
    "TTLCache",
]
