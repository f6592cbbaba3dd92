"""
Order lookup API routes.

Synchronous, user-initiated lookups go through the OrderLookupService;
background enrichment is requested by enqueueing a fetch_order job and read
back from the durable order cache.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from orderdesk.api.deps import get_services
from orderdesk.errors import ExternalApiError
from orderdesk.models.cache import CacheEntry, OrderSnapshot
from orderdesk.models.job import EnqueueResponse, EnrichOrderRequest
from orderdesk.models.order import Order
from orderdesk.queue.store import enqueue_order_fetch
from orderdesk.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/orders/cached/{correlation_id}", response_model=CacheEntry[OrderSnapshot])
def get_cached_order(
    correlation_id: str, services: Services = Depends(get_services)
) -> CacheEntry[OrderSnapshot]:
    """
    Get the enriched order stored for a correlation id.

    Returns:
        Cache entry with the raw order payload

    Raises:
        HTTPException: 404 if nothing (or nothing fresh) is cached yet
    """
    entry = services.order_cache.get(correlation_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="No cached order")
    return entry


@router.post("/orders/enrich", response_model=EnqueueResponse, status_code=202)
def enrich_order(
    request: EnrichOrderRequest, services: Services = Depends(get_services)
) -> EnqueueResponse:
    """
    Queue a background order lookup for a correlation id.

    Raises:
        HTTPException: 503 if the job could not be stored
    """
    job_id = enqueue_order_fetch(
        services.store,
        correlation_id=request.correlation_id,
        from_email=request.from_email,
        subject_text=request.subject_text,
        body_text=request.body_text,
        priority=request.priority,
    )
    if job_id is None:
        raise HTTPException(status_code=503, detail="Job queue unavailable")
    return EnqueueResponse(job_id=job_id)


@router.get("/orders", response_model=list[Order])
def list_orders_by_email(
    email: str = Query(description="Customer email"),
    limit: int = Query(default=10, ge=1, le=50, description="Maximum orders to return"),
    services: Services = Depends(get_services),
) -> list[Order]:
    """
    List a customer's orders by email (uncached).

    Raises:
        HTTPException: 502 if the order API fails
    """
    try:
        return services.lookup.get_orders_by_email(email, limit)
    except ExternalApiError as e:
        logger.error("Failed to fetch orders by email: %s", e)
        raise HTTPException(status_code=502, detail=f"Order API error: {e}")


@router.get("/orders/{order_number}", response_model=Order)
def get_order(order_number: str, services: Services = Depends(get_services)) -> Order:
    """
    Get order details by order number.

    Raises:
        HTTPException: 404 if the order is unknown or the API is rate limiting
        HTTPException: 502 if the order API fails
    """
    try:
        order = services.lookup.get_order_by_number(order_number)
    except ExternalApiError as e:
        logger.error("Failed to fetch order %s: %s", order_number, e)
        raise HTTPException(status_code=502, detail=f"Order API error: {e}")

    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
