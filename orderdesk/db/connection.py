"""
Database connection management.

Connects either through the Cloud SQL Python Connector with IAM authentication
(INSTANCE_CONNECTION_NAME) or to a plain SQLAlchemy URL (DATABASE_URL), with
SQLAlchemy connection pooling in both cases.
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator

from google.cloud.sql.connector import Connector
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from orderdesk.db.tables import metadata

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Manages the process-wide database engine and session factory.

    Usage:
        # Initialize at app startup
        DatabaseConnection.initialize(
            instance_connection_name="project:region:instance",
            db_name="orderdesk",
            db_user="service-account@project.iam"
        )

        # Or against any SQLAlchemy URL
        DatabaseConnection.initialize(database_url="postgresql+pg8000://...")

        # Use sessions
        with DatabaseConnection.session() as session:
            # perform database operations
            pass

        # Close at app shutdown
        DatabaseConnection.close()
    """

    _engine: Engine | None = None
    _connector: Connector | None = None
    _session_factory: sessionmaker | None = None
    _initialized: bool = False

    @classmethod
    def initialize(
        cls,
        database_url: str | None = None,
        instance_connection_name: str | None = None,
        db_name: str | None = None,
        db_user: str | None = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ):
        """
        Initialize the database connection pool.

        A database_url (or DATABASE_URL) takes precedence over Cloud SQL.

        Args:
            database_url: SQLAlchemy database URL
            instance_connection_name: Cloud SQL instance (project:region:instance)
            db_name: Database name
            db_user: Database user (service account email for IAM auth)
            pool_size: Base connection pool size
            max_overflow: Additional connections allowed beyond pool_size
            pool_timeout: Seconds to wait for a connection
            pool_recycle: Recycle connections after this many seconds
        """
        if cls._initialized:
            return

        database_url = database_url or os.getenv("DATABASE_URL")

        if database_url:
            if database_url.startswith("sqlite"):
                cls._engine = create_engine(database_url)
            else:
                cls._engine = create_engine(
                    database_url,
                    pool_size=pool_size,
                    max_overflow=max_overflow,
                    pool_timeout=pool_timeout,
                    pool_recycle=pool_recycle,
                    pool_pre_ping=True,
                )
        else:
            cls._engine = cls._create_cloud_sql_engine(
                instance_connection_name=instance_connection_name,
                db_name=db_name,
                db_user=db_user,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
            )

        cls._session_factory = sessionmaker(bind=cls._engine)
        cls._initialized = True

    @classmethod
    def initialize_from_env(cls) -> bool:
        """
        Initialize from DATABASE_URL or INSTANCE_CONNECTION_NAME when either is set.

        Services start without a database when neither is set or the connection
        cannot be set up; the queue and order cache then report themselves
        unavailable.

        Returns:
            True if the connection pool is ready
        """
        if not (os.getenv("DATABASE_URL") or os.getenv("INSTANCE_CONNECTION_NAME")):
            logger.warning(
                "Database not configured (DATABASE_URL / INSTANCE_CONNECTION_NAME not set)"
            )
            return False

        try:
            cls.initialize()
        except Exception:
            logger.exception("Database initialization failed")
            cls.close()
            return False

        logger.info("Database connection pool ready")
        return True

    @classmethod
    def _create_cloud_sql_engine(
        cls,
        instance_connection_name: str | None,
        db_name: str | None,
        db_user: str | None,
        **pool_options,
    ) -> Engine:
        """Create an engine that connects through the Cloud SQL connector."""
        instance_connection_name = instance_connection_name or os.getenv(
            "INSTANCE_CONNECTION_NAME"
        )
        db_name = db_name or os.getenv("DB_NAME", "orderdesk")
        db_user = db_user or os.getenv("DB_USER")

        if not instance_connection_name:
            raise ValueError(
                "DATABASE_URL or INSTANCE_CONNECTION_NAME environment variable is required. "
                "INSTANCE_CONNECTION_NAME format: project:region:instance"
            )

        if not db_user:
            raise ValueError(
                "DB_USER environment variable is required. "
                "Should be service account email for IAM auth."
            )

        cls._connector = Connector()

        def getconn():
            assert cls._connector is not None
            return cls._connector.connect(
                instance_connection_name,
                "pg8000",
                user=db_user,
                db=db_name,
                enable_iam_auth=True,
            )

        return create_engine(
            "postgresql+pg8000://",
            creator=getconn,
            pool_pre_ping=True,  # Verify connections before use
            **pool_options,
        )

    @classmethod
    def get_engine(cls) -> Engine:
        """Get the SQLAlchemy engine."""
        if not cls._initialized or cls._engine is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )
        return cls._engine

    @classmethod
    def create_tables(cls):
        """Create the jobs and order_cache tables if they do not exist."""
        metadata.create_all(cls.get_engine())

    @classmethod
    @contextmanager
    def session(cls) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Automatically commits on success and rolls back on exception.

        Yields:
            SQLAlchemy Session
        """
        session = cls.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @classmethod
    def close(cls):
        """Close the connection pool and connector."""
        if cls._engine:
            cls._engine.dispose()
            cls._engine = None

        if cls._connector:
            cls._connector.close()
            cls._connector = None

        cls._session_factory = None
        cls._initialized = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the database connection is initialized."""
        return cls._initialized

    @classmethod
    def get_session(cls) -> Session:
        """
        Get a new database session.

        The caller is responsible for committing/rolling back and closing the session.
        For automatic lifecycle management, use the session() context manager instead.

        Returns:
            SQLAlchemy Session
        """
        if not cls._initialized or cls._session_factory is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )

        return cls._session_factory()
