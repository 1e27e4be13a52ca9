"""Tests for the injectable clocks."""

from datetime import datetime, timedelta, timezone

from inventory_kernel.domain.clock import DeterministicClock, SystemClock


def test_system_clock_is_utc_aware():
    assert SystemClock().now().tzinfo is not None


def test_deterministic_clock_is_frozen():
    clock = DeterministicClock()
    assert clock.now() == clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_advance_and_tick():
    start = datetime(2025, 6, 1, tzinfo=timezone.utc)
    clock = DeterministicClock(start)
    clock.advance(30)
    assert clock.now() == start + timedelta(seconds=30)
    assert clock.tick() == start + timedelta(seconds=31)


def test_set_time_resets_offset():
    clock = DeterministicClock()
    clock.advance(100)
    target = datetime(2030, 1, 1, tzinfo=timezone.utc)
    clock.set_time(target)
    assert clock.now() == target
