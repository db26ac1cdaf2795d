# tests/unit/engine/test_clock.py
"""Tests for clock implementations."""

from __future__ import annotations

import pytest

from batchplan.engine.clock import DEFAULT_CLOCK, MockClock, SystemClock


class TestMockClock:
    def test_starts_at_given_time(self) -> None:
        assert MockClock(start=12.5).monotonic() == 12.5

    def test_sleep_records_and_advances(self) -> None:
        clock = MockClock()
        clock.sleep(1.5)
        clock.sleep(0.5)
        assert clock.sleeps == [1.5, 0.5]
        assert clock.monotonic() == 2.0

    def test_advance_rejects_negative(self) -> None:
        clock = MockClock()
        with pytest.raises(ValueError, match="negative"):
            clock.advance(-1)


class TestSystemClock:
    def test_monotonic_never_goes_backwards(self) -> None:
        clock = SystemClock()
        first = clock.monotonic()
        assert clock.monotonic() >= first

    def test_default_is_system_clock(self) -> None:
        assert isinstance(DEFAULT_CLOCK, SystemClock)
