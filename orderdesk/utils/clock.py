"""Clock helpers; components accept a clock callable so tests can pin time."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)
