"""
Order enrichment worker.

Drains fetch_order jobs from the JobStore in small batches, resolves each job
to an order through the order API, and stores the raw payload in the durable
OrderCache under the job's correlation id.

Cross-instance exclusion comes solely from JobStore.claim(); an instance only
refuses to start a second run while one is in progress.
"""

import logging
import threading
import time
from datetime import timedelta
from enum import StrEnum
from typing import Any, Callable

from pydantic import ValidationError

from orderdesk.cache.durable import OrderCache
from orderdesk.clients.order_api import ExternalOrderClient, extract_order_number
from orderdesk.config import WorkerPolicy
from orderdesk.errors import (
    ExternalApiError,
    PayloadValidationError,
    RateLimitError,
    StorageError,
)
from orderdesk.models.job import FetchOrderPayload, Job, JobType, RunResult
from orderdesk.queue.store import JobStore
from orderdesk.utils.logging import job_fields

logger = logging.getLogger(__name__)

ALREADY_RUNNING = "Worker already running"


class WorkerState(StrEnum):
    """Run state of a worker instance"""

    IDLE = "idle"
    RUNNING = "running"


class EnrichmentWorker:
    """
    Batch consumer of fetch_order jobs.

    Per run, at most max_jobs_per_run jobs are claimed. A rate-limit failure
    reschedules the job far in the future and pauses the run; enough
    consecutive rate limits abort the run. Other failures use the queue's
    exponential backoff.

    Args:
        store: Job queue
        client: Order API client
        cache: Durable order cache
        policy: Throughput and circuit-breaker policy
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        store: JobStore,
        client: ExternalOrderClient,
        cache: OrderCache,
        policy: WorkerPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.client = client
        self.cache = cache
        self.policy = policy or WorkerPolicy()
        self._sleep = sleep
        self._run_lock = threading.Lock()

    @property
    def state(self) -> WorkerState:
        return WorkerState.RUNNING if self._run_lock.locked() else WorkerState.IDLE

    def run(self) -> RunResult:
        """
        Process one batch of jobs.

        Returns:
            RunResult with processed/failed counts and error summaries
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Worker already running, skipping run")
            return RunResult(errors=[ALREADY_RUNNING])

        try:
            logger.info("Enrichment worker run started")
            result = self._run_batch()
        finally:
            self._run_lock.release()

        logger.info(
            "Enrichment worker run finished: %s processed, %s failed",
            result.processed,
            result.failed,
            extra={"json_fields": result.model_dump()},
        )
        return result

    def _run_batch(self) -> RunResult:
        result = RunResult()
        consecutive_rate_limits = 0
        max_jobs = self.policy.max_jobs_per_run

        for i in range(max_jobs):
            job = self.store.claim([JobType.FETCH_ORDER])
            if job is None:
                logger.info("No more jobs in queue")
                break

            logger.info(
                "Processing job %s (attempt %s/%s)",
                job.id,
                job.attempts,
                job.max_attempts,
                extra=job_fields(job),
            )
            cooled_down = False

            try:
                self.process_job(job)
            except RateLimitError:
                consecutive_rate_limits += 1
                retry_minutes = self.policy.rate_limit_retry_seconds / 60
                self.store.fail(
                    job.id,
                    f"Rate limit: will retry in {retry_minutes:g} minutes",
                    retry_delay=timedelta(seconds=self.policy.rate_limit_retry_seconds),
                )
                result.failed += 1
                result.errors.append(f"Job {job.id}: Rate limit - retry scheduled")
                logger.warning(
                    "Rate limit hit (%s consecutive)", consecutive_rate_limits
                )

                if consecutive_rate_limits >= self.policy.circuit_breaker_threshold:
                    logger.warning("Repeated rate limits, stopping worker run")
                    result.stopped_early = True
                    break

                self._sleep(self.policy.rate_limit_cooldown_seconds)
                cooled_down = True
            except Exception as e:
                message = str(e) or type(e).__name__
                logger.error(
                    "Job %s failed: %s", job.id, message, extra=job_fields(job, error=message)
                )
                self.store.fail(job.id, message)
                result.failed += 1
                result.errors.append(f"Job {job.id}: {message}")
            else:
                self.store.complete(job.id)
                result.processed += 1
                consecutive_rate_limits = 0

            if not cooled_down and i < max_jobs - 1 and self.policy.inter_job_delay_seconds > 0:
                self._sleep(self.policy.inter_job_delay_seconds)

        return result

    def process_job(self, job: Job):
        """
        Resolve a fetch_order job to an order and cache it.

        Raises:
            PayloadValidationError: If the payload has no correlation id
            RateLimitError: If the order API is rate limiting
            ExternalApiError: If the order cannot be found or fetched
            StorageError: If the order cannot be cached
        """
        payload = self._parse_payload(job)
        raw_order = self._fetch_order(payload)

        if raw_order is None:
            raise ExternalApiError("Order not found in order API")

        order_number = str(raw_order.get("orderNumber") or "")
        if not self.cache.put(payload.correlation_id, order_number, raw_order):
            raise StorageError("Failed to cache order data")

        logger.info(
            "Order %s cached for correlation id %s", order_number, payload.correlation_id
        )

    def _parse_payload(self, job: Job) -> FetchOrderPayload:
        try:
            return FetchOrderPayload.model_validate(job.payload)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}"
                for error in e.errors()
            )
            raise PayloadValidationError(f"Invalid fetch_order payload: {details}") from e

    def _fetch_order(self, payload: FetchOrderPayload) -> dict[str, Any] | None:
        order_number = extract_order_number(payload.full_text)

        if order_number:
            logger.info("Order number found: %s", order_number)
            return self.client.get_order_by_number(order_number)

        if payload.from_email:
            logger.info("No order number, trying customer email")
            orders = self.client.get_orders_by_email(
                payload.from_email, self.policy.email_lookup_limit
            )
            # Most recent first
            return orders[0] if orders else None

        logger.warning("No order number and no email to search")
        return None
