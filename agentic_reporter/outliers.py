"""Slow-test detection over the durations of a completed run."""

import statistics
from typing import Iterable

from .models import SlowTestRecord, TestCase


def detect_slow_tests(durations: Iterable[tuple[TestCase, float]],
                      std_devs: float) -> list[SlowTestRecord]:
    """Flag tests whose duration exceeds mean + std_devs * population stddev.

    Needs at least two samples. Results are sorted by duration, longest first.
    """
    durations = list(durations)
    if len(durations) < 2:
        return []
    values = [ms for _, ms in durations]
    threshold = statistics.fmean(values) + std_devs * statistics.pstdev(values)
    slow = [
        SlowTestRecord(title=test.title, file=test.file, duration_ms=ms, threshold_ms=threshold)
        for test, ms in durations
        if ms > threshold
    ]
    slow.sort(key=lambda r: r.duration_ms, reverse=True)
    return slow
