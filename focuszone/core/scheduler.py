"""
Clock, cooldown windows and the 1 Hz session ticker.

Nothing here runs a live timer. Cooldowns are stored as expiry stamps and
compared against an injected clock, and the ticker reports how many whole
intervals have elapsed whenever it is polled. This keeps every cooldown
deterministic under a ManualClock in tests and simulation.
"""

import time
import logging
from typing import Optional, Tuple

from focuszone.core.types import CooldownKind, CooldownWindow

logger = logging.getLogger(__name__)

Windows = Tuple[CooldownWindow, ...]


# =============================================================================
# Clocks
# =============================================================================

class Clock:
    """Millisecond clock interface."""

    def now_ms(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall-clock milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """Deterministic clock advanced by hand."""

    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)

    def now_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        self._now += int(ms)
        return self._now

    def set(self, ms: int) -> int:
        self._now = int(ms)
        return self._now


# =============================================================================
# Cooldown windows (pure helpers over an immutable tuple)
# =============================================================================

def arm(windows: Windows, kind: CooldownKind, expires_at: int) -> Windows:
    """Return windows with ``kind`` (re)armed to expire at ``expires_at``."""
    kept = tuple(w for w in windows if w.kind is not kind)
    return kept + (CooldownWindow(kind, int(expires_at)),)


def clear(windows: Windows, kind: CooldownKind) -> Windows:
    return tuple(w for w in windows if w.kind is not kind)


def find(windows: Windows, kind: CooldownKind) -> Optional[CooldownWindow]:
    for window in windows:
        if window.kind is kind:
            return window
    return None


def is_open(windows: Windows, kind: CooldownKind, now: int) -> bool:
    """True while a window of ``kind`` is armed and not yet expired."""
    window = find(windows, kind)
    return window is not None and window.is_open(now)


def remaining(windows: Windows, kind: CooldownKind, now: int) -> int:
    window = find(windows, kind)
    return window.remaining(now) if window is not None else 0


def prune(windows: Windows, now_ms: int) -> Windows:
    """Drop expired millisecond windows. Frame-counted windows are kept."""
    return tuple(
        w for w in windows
        if w.kind is CooldownKind.PALM_ABSENCE_RESUME or w.is_open(now_ms)
    )


# =============================================================================
# Ticker
# =============================================================================

class Scheduler:
    """Drives the 1 Hz session-timer ticks from a polling loop.

    The anchor advances by whole intervals, so a late poll yields several
    ticks at once. Drift from late polls is not corrected.
    """

    def __init__(self, clock: Optional[Clock] = None, interval_ms: int = 1000):
        self._clock = clock or SystemClock()
        self._interval_ms = max(1, int(interval_ms))
        self._anchor_ms = None
        self._tick_count = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def now_ms(self) -> int:
        return self._clock.now_ms()

    def start_ticker(self, now_ms: Optional[int] = None):
        """Start (or restart) the ticker with a fresh anchor."""
        self._anchor_ms = self.now_ms() if now_ms is None else int(now_ms)
        logger.debug("Ticker started at %d ms", self._anchor_ms)

    def stop_ticker(self):
        if self._anchor_ms is not None:
            logger.debug("Ticker stopped after %d ticks", self._tick_count)
        self._anchor_ms = None

    @property
    def ticking(self) -> bool:
        return self._anchor_ms is not None

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def due_ticks(self, now_ms: Optional[int] = None) -> int:
        """Number of whole intervals elapsed since the last reported tick."""
        if self._anchor_ms is None:
            return 0
        now = self.now_ms() if now_ms is None else int(now_ms)
        elapsed = now - self._anchor_ms
        if elapsed < self._interval_ms:
            return 0
        due = elapsed // self._interval_ms
        self._anchor_ms += due * self._interval_ms
        self._tick_count += due
        return int(due)
