"""
Clock -- injectable time source for movement timestamps.

Responsibility:
    Services never call ``datetime.now()`` directly; MovementLog stamps each
    movement from the Clock it was given.

Architecture position:
    Kernel > Domain -- pure functional core.  SystemClock is the one
    sanctioned I/O boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """``now()`` returns a timezone-aware UTC ``datetime``."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    With the default ``step_seconds=0`` every call returns the same instant.
    A positive step moves the clock forward after each reading, so
    consecutive movements get strictly increasing timestamps.
    """

    def __init__(self, fixed_time: datetime | None = None, step_seconds: int = 0):
        if step_seconds < 0:
            raise ValueError("step_seconds cannot be negative")
        self._current = fixed_time or DEFAULT_TEST_TIME
        self._step = timedelta(seconds=step_seconds)

    def now(self) -> datetime:
        reading = self._current
        self._current += self._step
        return reading

    def peek(self) -> datetime:
        """The value the next now() will return, without stepping."""
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
