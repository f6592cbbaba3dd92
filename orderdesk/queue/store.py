"""
Durable job queue.

JobStore is the only coordination point between enrichment workers: a job is
handed to exactly one claimer by a compare-and-swap on its status. All
operations are best-effort towards their callers; storage failures are logged
and reported as None/False instead of raised.
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Sequence
from uuid import uuid4

from orderdesk.config import QueuePolicy
from orderdesk.db.unit_of_work import UnitOfWork
from orderdesk.errors import StorageError
from orderdesk.models.job import Job, JobStatus, JobType, QueueStats
from orderdesk.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class JobStore:
    """
    Enqueue/claim/complete/fail/prune over the jobs table.

    Args:
        policy: Retry and retention policy
        uow_factory: Builds a UnitOfWork per operation
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        policy: QueuePolicy | None = None,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        clock: Clock = utcnow,
    ):
        self.policy = policy or QueuePolicy()
        self._uow_factory = uow_factory
        self._clock = clock

    def enqueue(
        self, job_type: JobType, payload: dict[str, Any], priority: int = 0
    ) -> str | None:
        """
        Add a pending job, claimable immediately.

        Args:
            job_type: Type of job
            payload: Job input parameters
            priority: Higher is serviced first

        Returns:
            Job ID, or None if the job could not be stored
        """
        now = self._clock()
        job = Job(
            id=str(uuid4()),
            job_type=job_type,
            status=JobStatus.PENDING,
            priority=priority,
            payload=payload,
            attempts=0,
            max_attempts=self.policy.max_attempts,
            scheduled_at=now,
            created_at=now,
            updated_at=now,
        )

        try:
            with self._uow_factory() as uow:
                created = uow.jobs.create(job)
                uow.commit()
        except StorageError as e:
            logger.error("Failed to enqueue %s job: %s", job_type, e)
            return None

        logger.info("Job enqueued: %s (id=%s, priority=%s)", job_type, created.id, priority)
        return created.id

    def claim(self, job_types: Sequence[JobType] | None = None) -> Job | None:
        """
        Claim the next eligible job for this caller.

        Selects the highest-priority, oldest pending job whose scheduled_at has
        passed, then moves it to processing only if it is still pending. When
        another worker wins that race, selection starts over.

        Args:
            job_types: Optional job type filter

        Returns:
            Claimed job (status processing, attempts incremented), or None if
            no job is eligible or storage is unavailable
        """
        try:
            while True:
                with self._uow_factory() as uow:
                    now = self._clock()
                    job_id = uow.jobs.find_next_eligible_id(now, job_types)
                    if job_id is None:
                        return None

                    if not uow.jobs.try_claim(job_id, now):
                        uow.rollback()
                        logger.debug("Lost claim race for job %s, retrying", job_id)
                        continue

                    job = uow.jobs.get_by_id(job_id)
                    uow.commit()
                    return job
        except StorageError as e:
            logger.error("Failed to claim job: %s", e)
            return None

    def complete(self, job_id: str) -> bool:
        """
        Mark a processing job as completed.

        Completing an already completed job is a successful no-op.

        Args:
            job_id: Job ID

        Returns:
            True if the job is completed
        """
        try:
            with self._uow_factory() as uow:
                updated = uow.jobs.mark_completed(job_id, self._clock())
                job = None if updated else uow.jobs.get_by_id(job_id)
                uow.commit()
        except StorageError as e:
            logger.error("Failed to complete job %s: %s", job_id, e)
            return False

        if updated:
            logger.info("Job completed: %s", job_id)
            return True

        if job is not None and job.status == JobStatus.COMPLETED:
            return True

        logger.warning(
            "Job %s not completed: status is %s",
            job_id,
            job.status if job else "missing",
        )
        return False

    def retry_delay(self, attempts: int) -> timedelta:
        """Exponential backoff delay after the given number of attempts."""
        seconds = min(
            self.policy.backoff_base**attempts, self.policy.max_backoff_seconds
        )
        return timedelta(seconds=seconds)

    def fail(
        self, job_id: str, error_message: str, retry_delay: timedelta | None = None
    ) -> bool:
        """
        Record a failed attempt of a processing job.

        With attempts left the job goes back to pending and becomes claimable
        after the backoff delay (or retry_delay when given). Otherwise it fails
        terminally.

        Args:
            job_id: Job ID
            error_message: Error description
            retry_delay: Overrides the exponential backoff delay

        Returns:
            True if the job was updated
        """
        try:
            with self._uow_factory() as uow:
                job = uow.jobs.get_by_id(job_id)
                if job is None or job.status != JobStatus.PROCESSING:
                    logger.warning(
                        "Cannot fail job %s: status is %s",
                        job_id,
                        job.status if job else "missing",
                    )
                    return False

                now = self._clock()
                if job.attempts < job.max_attempts:
                    delay = retry_delay if retry_delay is not None else self.retry_delay(job.attempts)
                    scheduled_at = now + delay
                    uow.jobs.reschedule(job_id, error_message, scheduled_at, now)
                    uow.commit()
                    logger.warning(
                        "Job %s failed (attempt %s/%s), retry at %s: %s",
                        job_id,
                        job.attempts,
                        job.max_attempts,
                        scheduled_at.isoformat(),
                        error_message,
                    )
                else:
                    uow.jobs.mark_failed(job_id, error_message, now)
                    uow.commit()
                    logger.error(
                        "Job %s failed permanently after %s attempts: %s",
                        job_id,
                        job.attempts,
                        error_message,
                    )
        except StorageError as e:
            logger.error("Failed to record failure of job %s: %s", job_id, e)
            return False

        return True

    def prune(self, older_than_days: int | None = None) -> int:
        """
        Delete completed/failed jobs older than the retention window.

        Args:
            older_than_days: Retention window (defaults to the policy)

        Returns:
            Number of deleted jobs (0 if storage is unavailable)
        """
        days = self.policy.retention_days if older_than_days is None else older_than_days
        cutoff = self._clock() - timedelta(days=days)

        try:
            with self._uow_factory() as uow:
                deleted = uow.jobs.delete_terminal_before(cutoff)
                uow.commit()
        except StorageError as e:
            logger.error("Failed to prune jobs: %s", e)
            return 0

        logger.info("Pruned %s jobs older than %s days", deleted, days)
        return deleted

    def get(self, job_id: str) -> Job | None:
        """Get a job by ID, or None if absent or storage is unavailable."""
        try:
            with self._uow_factory() as uow:
                return uow.jobs.get_by_id(job_id)
        except StorageError as e:
            logger.error("Failed to load job %s: %s", job_id, e)
            return None

    def stats(self) -> QueueStats | None:
        """
        Count jobs by status and by type.

        Returns:
            QueueStats, or None if storage is unavailable
        """
        try:
            with self._uow_factory() as uow:
                rows = uow.jobs.count_by_status_and_type()
        except StorageError as e:
            logger.error("Failed to load queue stats: %s", e)
            return None

        stats = QueueStats()
        for status, job_type, count in rows:
            stats.by_status[status] = stats.by_status.get(status, 0) + count
            stats.by_type[job_type] = stats.by_type.get(job_type, 0) + count
            stats.total += count
        return stats


def enqueue_order_fetch(
    store: JobStore,
    correlation_id: str,
    from_email: str | None,
    subject_text: str = "",
    body_text: str = "",
    priority: int = 5,
) -> str | None:
    """
    Enqueue a fetch_order job for a mail (or any other correlated context).

    Interactive, user-triggered lookups should pass priority=10 so they are
    serviced before passively discovered ones.

    Returns:
        Job ID or None if the job could not be stored
    """
    return store.enqueue(
        JobType.FETCH_ORDER,
        {
            "correlation_id": correlation_id,
            "from_email": from_email,
            "subject_text": subject_text,
            "body_text": body_text,
        },
        priority,
    )
