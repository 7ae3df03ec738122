"""Time differences and drift-free sleeps; times are floats in seconds."""

from __future__ import annotations

import math
import time


def us_tvdiff(end: float, start: float) -> float:
    """Return end - start in microseconds, capped at 60 seconds."""
    if math.floor(end) - math.floor(start) > 60:
        return 60000000.0
    return (end - start) * 1000000


def ms_tvdiff(end: float, start: float) -> int:
    """Return end - start in whole milliseconds, capped at one hour."""
    if math.floor(end) - math.floor(start) > 3600:
        return 3600000
    return int((end - start) * 1000)


def tvdiff(end: float, start: float) -> float:
    """Return end - start in seconds."""
    return end - start


def sane_tdiff(end: float, start: float) -> float:
    """Return end - start in seconds, never less than a millisecond."""
    return max(tvdiff(end, start), 0.001)


def cksleep_prepare_r() -> float:
    """Return a monotonic start time for the cksleep_*_r functions."""
    return time.monotonic()


def _sleep_until(deadline: float) -> None:
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        time.sleep(remaining)


def cksleep_ms_r(start: float, ms: float) -> None:
    """Sleep until ms milliseconds after the monotonic time start."""
    _sleep_until(start + ms / 1000)


def cksleep_us_r(start: float, us: float) -> None:
    """Sleep until us microseconds after the monotonic time start."""
    _sleep_until(start + us / 1000000)


def cksleep_ms(ms: float) -> None:
    """Sleep for ms milliseconds."""
    cksleep_ms_r(cksleep_prepare_r(), ms)


def cksleep_us(us: float) -> None:
    """Sleep for us microseconds."""
    cksleep_us_r(cksleep_prepare_r(), us)