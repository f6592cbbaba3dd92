"""
Job repository for database operations.

Handles job persistence, eligibility selection and status transitions.
Callers own the transaction; nothing here commits.
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy import Table, delete, func, select, update

from orderdesk.db.repositories.base import BaseRepository, as_utc
from orderdesk.db.tables import jobs
from orderdesk.models.job import TERMINAL_STATUSES, Job, JobStatus, JobType


class JobRepository(BaseRepository[Job]):
    """Repository for Job operations with status management."""

    @property
    def table(self) -> Table:
        return jobs

    def _row_to_model(self, row: Any) -> Job:
        """Convert database row to Job model."""
        return Job(
            id=str(row.id),
            job_type=JobType(row.job_type),
            status=JobStatus(row.status),
            priority=row.priority or 0,
            payload=row.payload or {},
            attempts=row.attempts or 0,
            max_attempts=row.max_attempts,
            error_message=row.error_message,
            scheduled_at=as_utc(row.scheduled_at),
            started_at=as_utc(row.started_at),
            completed_at=as_utc(row.completed_at),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def _model_to_dict(self, model: Job) -> dict:
        """Convert Job model to database dict."""
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "job_type": model.job_type.value,
            "status": model.status.value,
            "priority": model.priority,
            "payload": model.payload,
            "attempts": model.attempts,
            "max_attempts": model.max_attempts,
            "error_message": model.error_message,
            "scheduled_at": model.scheduled_at,
            "started_at": model.started_at,
            "completed_at": model.completed_at,
            "created_at": model.created_at,
            "updated_at": model.updated_at,
        }

    def find_next_eligible_id(
        self, now: datetime, job_types: Sequence[JobType] | None = None
    ) -> UUID | None:
        """
        Find the job that should be claimed next.

        Eligible jobs are pending with scheduled_at <= now. Higher priority
        wins; within a priority, the oldest job wins.

        Args:
            now: Current time
            job_types: Optional job type filter

        Returns:
            Job ID or None if nothing is eligible
        """
        stmt = select(self.table.c.id).where(
            self.table.c.status == JobStatus.PENDING.value,
            self.table.c.scheduled_at <= now,
        )

        if job_types:
            stmt = stmt.where(
                self.table.c.job_type.in_([job_type.value for job_type in job_types])
            )

        stmt = stmt.order_by(
            self.table.c.priority.desc(), self.table.c.created_at.asc()
        ).limit(1)

        return self.session.execute(stmt).scalar()

    def try_claim(self, job_id: UUID | str, now: datetime) -> bool:
        """
        Compare-and-swap a job from pending to processing.

        Args:
            job_id: Job ID
            now: Claim time

        Returns:
            True if this caller won the job, False if it was no longer pending
        """
        if isinstance(job_id, str):
            job_id = UUID(job_id)

        stmt = (
            update(self.table)
            .where(
                self.table.c.id == job_id,
                self.table.c.status == JobStatus.PENDING.value,
            )
            .values(
                status=JobStatus.PROCESSING.value,
                attempts=self.table.c.attempts + 1,
                started_at=now,
                updated_at=now,
            )
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def mark_completed(self, job_id: UUID | str, now: datetime) -> bool:
        """
        Mark a processing job as completed.

        Args:
            job_id: Job ID
            now: Completion time

        Returns:
            True if job was updated
        """
        if isinstance(job_id, str):
            job_id = UUID(job_id)

        stmt = (
            update(self.table)
            .where(
                self.table.c.id == job_id,
                self.table.c.status == JobStatus.PROCESSING.value,
            )
            .values(
                status=JobStatus.COMPLETED.value,
                completed_at=now,
                updated_at=now,
            )
        )
        return self.session.execute(stmt).rowcount > 0

    def reschedule(
        self,
        job_id: UUID | str,
        error_message: str,
        scheduled_at: datetime,
        now: datetime,
    ) -> bool:
        """
        Return a job to pending, not claimable before scheduled_at.

        Args:
            job_id: Job ID
            error_message: Error that caused the retry
            scheduled_at: Earliest time of the next claim
            now: Current time

        Returns:
            True if job was updated
        """
        return self.update_by_id(
            job_id,
            status=JobStatus.PENDING.value,
            error_message=error_message,
            scheduled_at=scheduled_at,
            updated_at=now,
        )

    def mark_failed(self, job_id: UUID | str, error_message: str, now: datetime) -> bool:
        """
        Mark job as terminally failed.

        Args:
            job_id: Job ID
            error_message: Error description
            now: Current time

        Returns:
            True if job was updated
        """
        return self.update_by_id(
            job_id,
            status=JobStatus.FAILED.value,
            error_message=error_message,
            completed_at=now,
            updated_at=now,
        )

    def delete_terminal_before(self, cutoff: datetime) -> int:
        """
        Delete completed/failed jobs last updated before cutoff.

        Args:
            cutoff: Retention boundary

        Returns:
            Number of deleted jobs
        """
        stmt = delete(self.table).where(
            self.table.c.status.in_([status.value for status in TERMINAL_STATUSES]),
            self.table.c.updated_at < cutoff,
        )
        return self.session.execute(stmt).rowcount

    def count_by_status_and_type(self) -> list[tuple[str, str, int]]:
        """
        Count jobs grouped by status and type.

        Returns:
            List of (status, job_type, count) tuples
        """
        stmt = select(
            self.table.c.status, self.table.c.job_type, func.count()
        ).group_by(self.table.c.status, self.table.c.job_type)
        return [(row[0], row[1], row[2]) for row in self.session.execute(stmt)]
