# src/replcm/core/clock.py
"""Clock abstraction for testable retention logic.

Retention compares file modification times (epoch seconds) against the
current wall-clock time, so the clock here exposes time.time() rather than
a monotonic counter.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock for retention and recycle timestamps."""

    def now(self) -> float:
        """Return current wall-clock time in epoch seconds.

        Must be comparable with filesystem modification times.
        """
        ...


class SystemClock:
    """Production clock using time.time()."""

    def now(self) -> float:
        """Return system wall-clock time."""
        return time.time()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=1_700_000_000.0)
        clearer = Clearer(gateway, settings, clock=clock)

        clock.advance(2 * 86400)  # two days later
        clearer.sweep()  # entries recycled at start are now expired
    """

    def __init__(self, start: float = 0.0) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial epoch time value (default 0.0).
        """
        self._current = start

    def now(self) -> float:
        """Return current mock time."""
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds

    def set(self, value: float) -> None:
        """Set mock time to an absolute value."""
        self._current = value


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
