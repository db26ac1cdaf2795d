# src/batchplan/engine/clock.py
"""Clock abstraction for the scheduler's polling loop.

JobControl sleeps between polls of running jobs. Production code uses
SystemClock (the default). Tests inject MockClock so a run completes
without real waiting and elapsed time can be asserted.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract clock for polling.

    Implementations:
    - SystemClock: Uses time.monotonic() and time.sleep() (production)
    - MockClock: Returns controllable times, sleeping advances them (testing)
    """

    def monotonic(self) -> float:
        """Return monotonic time in seconds.

        Must be monotonic (never goes backwards), suitable for elapsed
        time calculations. Corresponds to time.monotonic().
        """
        ...

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` between two polls."""
        ...


class SystemClock:
    """Production clock using time.monotonic() and time.sleep()."""

    def monotonic(self) -> float:
        """Return system monotonic time."""
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class MockClock:
    """Controllable clock for deterministic testing.

    sleep() returns immediately and advances the clock instead.

    Example:
        clock = MockClock(start=0.0)
        control = JobControl(settings, clock=clock)
        control.run()
        assert clock.sleeps == [1.0, 1.0]
    """

    def __init__(self, start: float = 0.0) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial monotonic time value (default 0.0).
        """
        self._current = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
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

    def sleep(self, seconds: float) -> None:
        """Record the sleep and advance mock time by it."""
        self.sleeps.append(seconds)
        self.advance(seconds)


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
