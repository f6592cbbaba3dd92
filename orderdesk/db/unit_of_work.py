"""
Unit of Work pattern for transaction coordination.

Provides a clean way to work with multiple repositories within a single transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from sqlalchemy.exc import SQLAlchemyError

from orderdesk.db.connection import DatabaseConnection
from orderdesk.db.repositories.job import JobRepository
from orderdesk.db.repositories.order_cache import OrderCacheRepository
from orderdesk.errors import StorageError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class UnitOfWork:
    """
    Unit of Work for managing database transactions.

    Coordinates repositories within a single transaction, with automatic
    rollback on error. SQLAlchemy errors and sessions that cannot be opened
    leave the context as StorageError.

    Usage:
        with UnitOfWork() as uow:
            job = uow.jobs.create(job)
            uow.commit()  # Explicit commit

        # Auto-rollback on exception:
        with UnitOfWork() as uow:
            uow.jobs.try_claim(job_id, now)
            raise Exception("Something went wrong")
            # Transaction is automatically rolled back
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None):
        self._session_factory = session_factory or DatabaseConnection.get_session
        self._session: Session | None = None
        self._jobs: JobRepository | None = None
        self._order_cache: OrderCacheRepository | None = None

    def __enter__(self) -> UnitOfWork:
        # Covers an uninitialized DatabaseConnection and connector failures
        try:
            self._session = self._session_factory()
        except Exception as e:
            raise StorageError(f"Could not open database session: {e}") from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            try:
                self.rollback()
            except SQLAlchemyError:
                pass  # Connection already unusable; the original error is reported
        self._close()
        if exc_type is not None and issubclass(exc_type, SQLAlchemyError):
            raise StorageError(str(exc_val)) from exc_val
        return False  # Don't suppress exceptions

    @property
    def session(self) -> Session:
        """Get current session (raises if not in context)."""
        if self._session is None:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._session

    @property
    def jobs(self) -> JobRepository:
        """Job repository for this unit of work."""
        if self._jobs is None:
            self._jobs = JobRepository(self.session)
        return self._jobs

    @property
    def order_cache(self) -> OrderCacheRepository:
        """Order cache repository for this unit of work."""
        if self._order_cache is None:
            self._order_cache = OrderCacheRepository(self.session)
        return self._order_cache

    def commit(self):
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self):
        """Rollback the current transaction."""
        self.session.rollback()

    def _close(self):
        """Close the session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            self._jobs = None
            self._order_cache = None
