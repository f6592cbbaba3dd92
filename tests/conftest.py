"""
pytest configuration and fixtures.

Loads environment variables from .env file for all tests and provides a
file-backed SQLite database plus a controllable clock for queue and cache
tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from orderdesk.db.tables import metadata
from orderdesk.db.unit_of_work import UnitOfWork


def pytest_configure(config):
    """Load .env file before running tests"""
    # Find the project root (where .env is located)
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"

    if env_file.exists():
        print(f"Loading environment from {env_file}")
        load_dotenv(env_file)
    else:
        print(f"Warning: .env file not found at {env_file}")


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at a known UTC instant."""
    return FakeClock(datetime(2026, 1, 23, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(tmp_path: Path):
    """SQLite database with the orderdesk tables."""
    engine = create_engine(f"sqlite:///{tmp_path / 'orderdesk.db'}")
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine)


@pytest.fixture
def uow_factory(session_factory: sessionmaker):
    """UnitOfWork factory bound to the test database."""
    return lambda: UnitOfWork(session_factory)


@pytest.fixture
def broken_uow_factory(tmp_path: Path):
    """UnitOfWork factory whose database cannot be opened."""
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'orderdesk.db'}")
    factory = sessionmaker(bind=engine)
    yield lambda: UnitOfWork(factory)
    engine.dispose()
