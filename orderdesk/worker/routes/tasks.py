"""
Task endpoints for scheduled background processing.

A scheduler sends HTTP requests to these endpoints; each request runs one
bounded unit of work and returns its outcome.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from orderdesk.api.deps import get_services
from orderdesk.models.job import QueueStats, RunResult
from orderdesk.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process-queue", response_model=RunResult)
def process_queue(services: Services = Depends(get_services)) -> RunResult:
    """
    Run one enrichment batch.

    Returns:
        RunResult with processed/failed counts and per-job errors

    Flow:
        1. Claim up to max_jobs_per_run fetch_order jobs
        2. Resolve each job to an order via the order API
        3. Cache the raw order under the job's correlation id
        4. Complete or reschedule the job
    """
    try:
        return services.worker.run()
    except Exception as e:
        logger.exception("Queue processing failed")
        raise HTTPException(
            status_code=500,
            detail=f"Queue processing failed: {str(e)}",
        )


@router.get("/queue-stats", response_model=QueueStats)
def queue_stats(services: Services = Depends(get_services)) -> QueueStats:
    """
    Job counts by status and type.

    Raises:
        HTTPException: 503 if the queue is unavailable
    """
    stats = services.store.stats()
    if stats is None:
        raise HTTPException(status_code=503, detail="Job queue unavailable")
    return stats


@router.post("/housekeeping")
def housekeeping(services: Services = Depends(get_services)) -> dict:
    """
    Prune old terminal jobs and purge expired cache entries.

    Returns:
        dict: Counts of removed jobs and cache entries
    """
    jobs_pruned = services.store.prune()
    order_cache_swept = services.order_cache.sweep_expired()
    local_cache_swept = services.lookup.sweep_cache()

    logger.info(
        "Housekeeping: %s jobs pruned, %s cached orders expired",
        jobs_pruned,
        order_cache_swept,
    )
    return {
        "status": "success",
        "jobs_pruned": jobs_pruned,
        "order_cache_swept": order_cache_swept,
        "local_cache_swept": local_cache_swept,
    }
