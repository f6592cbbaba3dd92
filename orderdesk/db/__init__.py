"""
Orderdesk Database Module.

Provides database connection management and repositories for the job queue
and the durable order cache. Uses SQLAlchemy Core.
"""

from orderdesk.db.connection import DatabaseConnection
from orderdesk.db.unit_of_work import UnitOfWork

__all__ = ["DatabaseConnection", "UnitOfWork"]
