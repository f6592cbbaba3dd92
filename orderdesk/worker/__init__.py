"""
Orderdesk Worker Service

Background worker for order enrichment:
- Claims fetch_order jobs from the durable queue
- Looks orders up in the order API under rate-limit protection
- Stores raw orders in the shared order cache
"""

__all__ = []
