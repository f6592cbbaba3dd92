"""
Durable background job queue.
"""

from orderdesk.queue.store import JobStore, enqueue_order_fetch

__all__ = ["JobStore", "enqueue_order_fetch"]
