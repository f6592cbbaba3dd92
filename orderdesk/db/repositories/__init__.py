"""
Repository implementations for the orderdesk database.

Repositories provide a clean interface for database operations,
encapsulating SQLAlchemy queries and Pydantic model conversions.
"""

from orderdesk.db.repositories.job import JobRepository
from orderdesk.db.repositories.order_cache import OrderCacheRepository

__all__ = [
    "JobRepository",
    "OrderCacheRepository",
]
