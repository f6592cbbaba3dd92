"""
Runtime configuration for orderdesk.

Policy values are read from the environment (optionally populated from a
.env file by the service entrypoints) and validated into Pydantic models.
Every component receives its policy explicitly through its constructor.
"""

import os

from pydantic import BaseModel, Field

DEFAULT_ORDER_API_URL = "https://api.myikas.com/api/v1/admin/graphql"


class QueuePolicy(BaseModel):
    """Retry and retention policy for the job queue."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts before a job fails terminally")
    backoff_base: float = Field(
        default=2.0, gt=1.0, description="Retry delay is backoff_base ** attempts seconds"
    )
    max_backoff_seconds: float = Field(
        default=3600, gt=0, description="Upper bound for the exponential retry delay"
    )
    retention_days: int = Field(
        default=7, ge=0, description="Terminal jobs older than this are pruned"
    )


class CachePolicy(BaseModel):
    """TTL and capacity policy for a TTL cache instance."""

    ttl_seconds: float = Field(gt=0, description="Time-to-live of each entry")
    max_entries: int | None = Field(
        default=None, ge=1, description="Capacity bound (None for unbounded)"
    )
    evict_fraction: float = Field(
        default=0.2,
        gt=0,
        le=1,
        description="Share of oldest entries evicted when the cache is full",
    )


class WorkerPolicy(BaseModel):
    """Throughput and circuit-breaker policy for the enrichment worker."""

    max_jobs_per_run: int = Field(default=5, ge=1)
    inter_job_delay_seconds: float = Field(default=3.0, ge=0)
    rate_limit_retry_seconds: float = Field(
        default=15 * 60, gt=0, description="Reschedule delay after a rate-limit failure"
    )
    rate_limit_cooldown_seconds: float = Field(
        default=30.0, ge=0, description="Pause after a rate-limit failure"
    )
    circuit_breaker_threshold: int = Field(
        default=2, ge=1, description="Consecutive rate limits that abort a run"
    )
    email_lookup_limit: int = Field(default=3, ge=1)


class OrderApiSettings(BaseModel):
    """Connection settings for the external order API."""

    graphql_url: str = DEFAULT_ORDER_API_URL
    access_token: str | None = None
    timeout_seconds: float = 10.0


class Settings(BaseModel):
    """All orderdesk settings."""

    queue: QueuePolicy = Field(default_factory=QueuePolicy)
    order_cache: CachePolicy = Field(
        default_factory=lambda: CachePolicy(ttl_seconds=15 * 60)
    )
    local_cache: CachePolicy = Field(
        default_factory=lambda: CachePolicy(ttl_seconds=60 * 60, max_entries=500)
    )
    worker: WorkerPolicy = Field(default_factory=WorkerPolicy)
    order_api: OrderApiSettings = Field(default_factory=OrderApiSettings)


def _env(name: str, default):
    value = os.getenv(name)
    return default if value in (None, "") else value


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Unset variables fall back to the model defaults.

    Returns:
        Validated Settings
    """
    return Settings(
        queue=QueuePolicy(
            max_attempts=_env("QUEUE_MAX_ATTEMPTS", 3),
            backoff_base=_env("QUEUE_BACKOFF_BASE", 2.0),
            max_backoff_seconds=_env("QUEUE_MAX_BACKOFF_SECONDS", 3600),
            retention_days=_env("QUEUE_RETENTION_DAYS", 7),
        ),
        order_cache=CachePolicy(
            ttl_seconds=_env("ORDER_CACHE_TTL_SECONDS", 15 * 60),
        ),
        local_cache=CachePolicy(
            ttl_seconds=_env("LOCAL_CACHE_TTL_SECONDS", 60 * 60),
            max_entries=_env("LOCAL_CACHE_MAX_ENTRIES", 500),
            evict_fraction=_env("LOCAL_CACHE_EVICT_FRACTION", 0.2),
        ),
        worker=WorkerPolicy(
            max_jobs_per_run=_env("WORKER_MAX_JOBS_PER_RUN", 5),
            inter_job_delay_seconds=_env("WORKER_INTER_JOB_DELAY_SECONDS", 3.0),
            rate_limit_retry_seconds=_env("WORKER_RATE_LIMIT_RETRY_SECONDS", 15 * 60),
            rate_limit_cooldown_seconds=_env("WORKER_RATE_LIMIT_COOLDOWN_SECONDS", 30.0),
            circuit_breaker_threshold=_env("WORKER_CIRCUIT_BREAKER_THRESHOLD", 2),
            email_lookup_limit=_env("WORKER_EMAIL_LOOKUP_LIMIT", 3),
        ),
        order_api=OrderApiSettings(
            graphql_url=_env("ORDER_API_URL", DEFAULT_ORDER_API_URL),
            access_token=os.getenv("ORDER_API_ACCESS_TOKEN"),
            timeout_seconds=_env("ORDER_API_TIMEOUT_SECONDS", 10.0),
        ),
    )
