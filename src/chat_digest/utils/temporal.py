"""Helpers for rendering stored message timestamps."""

from __future__ import annotations

import threading
import time
from datetime import datetime, tzinfo

DEFAULT_DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def to_datetime(timestamp_ms: int, tz: tzinfo | None = None) -> datetime:
    """Convert epoch milliseconds to an aware datetime.

    ``tz=None`` means server local time.
    """
    seconds = int(timestamp_ms) / 1000
    if tz is None:
        return datetime.fromtimestamp(seconds).astimezone()
    return datetime.fromtimestamp(seconds, tz=tz)


def format_timestamp(
    timestamp_ms: int,
    tz: tzinfo | None = None,
    fmt: str = DEFAULT_DATETIME_FORMAT,
) -> str:
    """Render epoch milliseconds for humans (``19/10/2026 14:03:05`` by default)."""
    return to_datetime(timestamp_ms, tz).strftime(fmt)


class MonotonicClock:
    """Millisecond clock that never repeats or goes backwards in-process.

    Each call returns ``max(source(), previous + 1)`` so that timestamp order
    always matches call order.
    """

    def __init__(self, source=now_ms):
        self._source = source
        self._last: int | None = None
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            value = int(self._source())
            if self._last is not None and value <= self._last:
                value = self._last + 1
            self._last = value
            return value
