"""Tests for timestamp helpers."""

from __future__ import annotations

from datetime import timezone

from chat_digest.utils.temporal import MonotonicClock, format_timestamp, now_ms, to_datetime


def test_format_timestamp_uses_given_zone() -> None:
    assert format_timestamp(0, timezone.utc) == "01/01/1970 00:00:00"
    assert format_timestamp(1_700_000_000_000, timezone.utc) == "14/11/2023 22:13:20"


def test_format_timestamp_custom_format() -> None:
    assert format_timestamp(86_400_000, timezone.utc, "%Y-%m-%d") == "1970-01-02"


def test_to_datetime_local_time_is_aware() -> None:
    assert to_datetime(now_ms()).tzinfo is not None


def test_monotonic_clock_passes_through_increasing_source() -> None:
    clock = MonotonicClock(iter([10, 20, 30]).__next__)
    assert [clock(), clock(), clock()] == [10, 20, 30]


def test_monotonic_clock_never_repeats_or_goes_back() -> None:
    clock = MonotonicClock(iter([100, 100, 99, 150, 120]).__next__)
    assert [clock() for _ in range(5)] == [100, 101, 102, 150, 151]
