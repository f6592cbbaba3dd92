"""
SQLAlchemy Table definitions for the orderdesk database.

Uses SQLAlchemy Core (not ORM) for flexibility with Pydantic models.
JSON columns are stored as JSONB on PostgreSQL.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

JsonType = JSON().with_variant(JSONB(), "postgresql")

# =============================================================================
# TABLE: jobs
# =============================================================================

jobs = Table(
    "jobs",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("job_type", String(50), nullable=False),
    Column("status", String(20), nullable=False, default="pending"),
    Column("priority", Integer, nullable=False, default=0),
    Column("payload", JsonType, default={}),
    # Retry tracking
    Column("attempts", Integer, nullable=False, default=0),
    Column("max_attempts", Integer, nullable=False, default=3),
    Column("error_message", Text),
    # Scheduling
    Column("scheduled_at", DateTime(timezone=True), nullable=False),
    Column("started_at", DateTime(timezone=True)),
    Column("completed_at", DateTime(timezone=True)),
    # Timestamps
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# Supports "next eligible job" selection
Index(
    "ix_jobs_next_eligible",
    jobs.c.status,
    jobs.c.scheduled_at,
    jobs.c.priority.desc(),
    jobs.c.created_at,
)

# =============================================================================
# TABLE: order_cache
# =============================================================================

order_cache = Table(
    "order_cache",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("correlation_id", String(255), unique=True, nullable=False),
    Column("order_number", String(255), nullable=False),
    Column("order_data", JsonType, nullable=False, default={}),
    Column("fetched_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("ix_order_cache_expires_at", order_cache.c.expires_at)
