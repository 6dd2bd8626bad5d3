"""
Horizontal swipe detection from the palm-centre trajectory.

Keeps a short FIFO of palm positions and compares the oldest and newest of
the most recent few samples. A swipe needs a large horizontal displacement
with limited vertical drift. The history is cleared on detection so the same
motion cannot fire again on the next frame.
"""

import math
import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from focuszone.core.types import SwipeDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PalmSample:
    """Single palm-centre position in the movement history."""
    x: float
    y: float
    timestamp_ms: int


class SwipeDetector:
    """Detects left/right swipes from successive palm-centre samples."""

    def __init__(self, config: dict = None):
        """Initialize the detector.

        Args:
            config: ``recognition.swipe`` section from config.yaml
        """
        config = config or {}
        self._history_size = config.get("history_size", 10)
        self._window = config.get("window", 5)
        self._min_dx = config.get("min_dx", 0.15)
        self._max_dy = config.get("max_dy", 0.3)
        self._min_distance = config.get("min_distance", 0.15)

        self._history = deque(maxlen=self._history_size)

    def update(self, x: float, y: float, timestamp_ms: int) -> Optional[SwipeDirection]:
        """Append a palm position and check for a swipe.

        Returns:
            SwipeDirection when a swipe was recognized this call, else None
        """
        self._history.append(PalmSample(float(x), float(y), int(timestamp_ms)))

        if len(self._history) < self._window:
            return None

        recent = list(self._history)[-self._window:]
        start, end = recent[0], recent[-1]
        dx = end.x - start.x
        dy = end.y - start.y
        distance = math.hypot(dx, dy)

        horizontal = abs(dx) > self._min_dx and abs(dy) < self._max_dy
        logger.debug("Swipe check: dx=%.3f dy=%.3f dist=%.3f horizontal=%s",
                     dx, dy, distance, horizontal)

        if horizontal and distance > self._min_distance:
            self._history.clear()
            direction = SwipeDirection.RIGHT if dx > 0 else SwipeDirection.LEFT
            logger.info("Swipe %s detected (dx=%.3f, %d ms)",
                        direction.value, dx, end.timestamp_ms - start.timestamp_ms)
            return direction

        return None

    @property
    def history(self) -> list:
        return list(self._history)

    def reset(self):
        """Clear the movement history."""
        self._history.clear()
