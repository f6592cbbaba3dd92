"""
Orderdesk data models.

This package contains the Pydantic models for jobs, orders and cache entries.
"""

# Cache models
from orderdesk.models.cache import CacheEntry, OrderSnapshot

# Job models
from orderdesk.models.job import (
    EnqueueResponse,
    EnrichOrderRequest,
    FetchOrderPayload,
    Job,
    JobStatus,
    JobType,
    QueueStats,
    RunResult,
)

# Order models
from orderdesk.models.order import Order, OrderItem, ShippingInfo, map_raw_order

__all__ = [
    # Order models
    "Order",
    "OrderItem",
    "ShippingInfo",
    "map_raw_order",
    # Job models
    "EnqueueResponse",
    "EnrichOrderRequest",
    "FetchOrderPayload",
    "Job",
    "JobStatus",
    "JobType",
    "QueueStats",
    "RunResult",
    # Cache models
    "CacheEntry",
    "OrderSnapshot",
]
