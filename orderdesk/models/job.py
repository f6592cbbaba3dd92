from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobType(StrEnum):
    """Type of background job"""

    FETCH_ORDER = "fetch_order"  # Fetch order details from the order API
    CLEANUP = "cleanup"  # Queue/cache housekeeping


class JobStatus(StrEnum):
    """Status of background job"""

    PENDING = "pending"  # Waiting to be claimed (possibly scheduled for later)
    PROCESSING = "processing"  # Claimed by exactly one worker
    COMPLETED = "completed"  # Finished successfully
    FAILED = "failed"  # Out of attempts


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


def _empty_if_none(value):
    # Mails without a subject or body arrive with null text
    return "" if value is None else value


class Job(BaseModel):
    """
    Durable background job.

    Status transitions are pending -> processing -> completed, back to
    pending with a later scheduled_at, or failed once attempts are used up.
    """

    # Identity
    id: str = Field(description="Job identifier (UUID)")

    # Job details
    job_type: JobType = Field(description="Type of job")
    status: JobStatus = Field(default=JobStatus.PENDING, description="Current job status")
    priority: int = Field(default=0, description="Higher priority is serviced first")

    # Payload
    payload: dict[str, Any] = Field(default_factory=dict, description="Job input parameters")

    # Retry tracking
    attempts: int = Field(default=0, description="Number of claims so far")
    max_attempts: int = Field(default=3, description="Claims allowed before failing")
    error_message: Optional[str] = Field(
        default=None, description="Last error recorded for this job"
    )

    # Timing
    scheduled_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Earliest time the job may be claimed",
    )
    started_at: Optional[datetime] = Field(
        default=None, description="When the job was last claimed"
    )
    completed_at: Optional[datetime] = Field(
        default=None, description="When the job reached a terminal status"
    )

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Record creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b6f8c1e-7d7a-4d43-9d0e-2c9f0f4c8a11",
                "job_type": "fetch_order",
                "status": "processing",
                "priority": 10,
                "payload": {
                    "correlation_id": "mail_123",
                    "from_email": "Ayşe Yılmaz <ayse@example.com>",
                    "subject_text": "Order #4521",
                    "body_text": "Where is my package?",
                },
                "attempts": 1,
                "max_attempts": 3,
                "scheduled_at": "2026-01-23T10:00:00Z",
                "started_at": "2026-01-23T10:00:05Z",
            }
        }
    )


class FetchOrderPayload(BaseModel):
    """Payload of a fetch_order job."""

    correlation_id: str = Field(min_length=1, description="Caller context id (e.g. mail id)")
    subject_text: str = Field(default="", description="Subject to mine for an order number")
    body_text: str = Field(default="", description="Body to mine for an order number")
    from_email: Optional[str] = Field(
        default=None, description="Customer email, used when no order number is found"
    )

    @field_validator("subject_text", "body_text", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        return _empty_if_none(value)

    @property
    def full_text(self) -> str:
        return f"{self.subject_text} {self.body_text}"


class QueueStats(BaseModel):
    """Job counts grouped by status and by type."""

    by_status: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    total: int = 0


class RunResult(BaseModel):
    """Outcome of one enrichment worker run."""

    processed: int = Field(default=0, description="Jobs completed")
    failed: int = Field(default=0, description="Jobs that failed this run")
    errors: list[str] = Field(default_factory=list, description="Per-job error summaries")
    stopped_early: bool = Field(
        default=False, description="Run aborted by the rate-limit circuit breaker"
    )


class EnrichOrderRequest(BaseModel):
    """Request to enrich a correlated context with order details in the background."""

    correlation_id: str = Field(min_length=1, description="Caller context id (e.g. mail id)")
    from_email: Optional[str] = Field(default=None, description="Customer email")
    subject_text: str = Field(default="", description="Text to mine for an order number")
    body_text: str = Field(default="", description="Text to mine for an order number")
    priority: int = Field(
        default=10, description="10 for user-triggered lookups, 0-5 for passive ones"
    )

    @field_validator("subject_text", "body_text", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        return _empty_if_none(value)


class EnqueueResponse(BaseModel):
    """Response of an enqueue request."""

    job_id: str
    status: JobStatus = JobStatus.PENDING
