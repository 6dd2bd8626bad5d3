"""
Per-stage latency tracking for the frame callbacks.

The pipeline wraps its face, hand and tick handling in ``measure()``; the
monitor keeps a rolling window of durations per stage plus call counts, and
derives the frame rate of each input stream from successive calls.
"""

import time
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class StageStats:
    """Rolling latency window and call cadence for one stage."""

    __slots__ = ("durations", "intervals", "calls", "last_started", "max_ms")

    def __init__(self, window_size: int):
        self.durations = deque(maxlen=window_size)
        self.intervals = deque(maxlen=window_size)
        self.calls = 0
        self.last_started = None
        self.max_ms = 0.0

    @property
    def average_ms(self) -> float:
        if not self.durations:
            return 0.0
        return sum(self.durations) / len(self.durations)

    @property
    def rate_hz(self) -> float:
        if len(self.intervals) < 2:
            return 0.0
        avg = sum(self.intervals) / len(self.intervals)
        return 1.0 / avg if avg > 0 else 0.0


class PerformanceMonitor:
    """Tracks per-stage latency and input cadence."""

    STAGES = ("face", "hand", "tick")

    def __init__(self, window_size: int = 100, enabled: bool = True):
        self._window_size = window_size
        self._enabled = enabled
        self._stages = {name: StageStats(window_size) for name in self.STAGES}
        self._start_time = time.time()

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager timing one pass through ``stage_name``."""
        if not self._enabled:
            yield
            return

        stats = self._stages.get(stage_name)
        if stats is None:
            stats = self._stages[stage_name] = StageStats(self._window_size)

        start = time.perf_counter()
        if stats.last_started is not None:
            stats.intervals.append(start - stats.last_started)
        stats.last_started = start
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            stats.durations.append(elapsed_ms)
            stats.calls += 1
            stats.max_ms = max(stats.max_ms, elapsed_ms)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency for a stage in ms (0.0 if never measured)."""
        stats = self._stages.get(stage_name)
        return stats.average_ms if stats else 0.0

    def get_stage_rate(self, stage_name: str) -> float:
        """Average call rate for a stage in Hz."""
        stats = self._stages.get(stage_name)
        return stats.rate_hz if stats else 0.0

    def get_call_count(self, stage_name: str) -> int:
        stats = self._stages.get(stage_name)
        return stats.calls if stats else 0

    def get_report(self) -> dict:
        """Generate a per-stage performance report."""
        return {
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "stages": {
                name: {
                    "calls": stats.calls,
                    "avg_ms": round(stats.average_ms, 3),
                    "max_ms": round(stats.max_ms, 3),
                    "rate_hz": round(stats.rate_hz, 1),
                }
                for name, stats in self._stages.items()
            },
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("  %-8s %8s %10s %10s %8s", "stage", "calls", "avg ms", "max ms", "Hz")
        for name, stats in report["stages"].items():
            logger.info("  %-8s %8d %10.3f %10.3f %8.1f", name, stats["calls"],
                        stats["avg_ms"], stats["max_ms"], stats["rate_hz"])
        logger.info("=" * 60)

    def reset(self):
        self._stages = {name: StageStats(self._window_size) for name in self.STAGES}
        self._start_time = time.time()
