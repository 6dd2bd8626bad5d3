"""
Attention readouts derived from the focus stream.

    focus_status_text  smoothed score -> "Focused" / "Present" / "Away"
    FocusMeter         slow-filling bar that collapses on distraction
    GazeHeatmap        coarse grid of where the nose tip has pointed
"""

import logging
from typing import Optional

import numpy as np

from focuszone.core.types import SessionState

logger = logging.getLogger(__name__)


def focus_status_text(score: float, focused_at: float = 65, present_at: float = 50) -> str:
    if score >= focused_at:
        return "Focused"
    if score >= present_at:
        return "Present"
    return "Away"


class FocusMeter:
    """Focus meter level, 0 - 100, stepped on a fixed 100 ms cadence.

    Each step while the session runs: +0.5 when focused, drop to 0 when not.
    While paused or holding the pause gesture the level is held. Outside an
    active session the meter does not step at all.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._step_ms = max(1, int(config.get("step_ms", 100)))
        self._growth = config.get("growth_per_step", 0.5)
        self._level = 0.0
        self._anchor_ms = None

    @property
    def level(self) -> float:
        return self._level

    def set_level(self, level: float):
        self._level = float(min(100.0, max(0.0, level)))

    def advance(self, now_ms: int, session: SessionState, focused: bool) -> int:
        """Apply every whole step elapsed since the last call.

        Returns:
            Number of steps applied
        """
        if not session.is_active:
            self._anchor_ms = None
            return 0
        if self._anchor_ms is None:
            self._anchor_ms = now_ms
            return 0

        steps = (now_ms - self._anchor_ms) // self._step_ms
        if steps <= 0:
            return 0
        self._anchor_ms += steps * self._step_ms

        if session.paused or session.holding_pause_gesture:
            return steps
        if focused:
            self._level = min(100.0, self._level + self._growth * steps)
        else:
            self._level = 0.0
        return steps

    def reset(self):
        self._level = 0.0
        self._anchor_ms = None


class GazeHeatmap:
    """20x15 heat grid fed with normalized gaze points."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._cols = config.get("cols", 20)
        self._rows = config.get("rows", 15)
        self._radius = config.get("radius", 4)
        self._falloff = config.get("falloff", 6.0)
        self._gain = config.get("gain", 0.3)
        self._enabled = config.get("enabled", False)
        self._grid = np.zeros((self._rows, self._cols), dtype=np.float64)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool):
        self._enabled = bool(enabled)
        logger.info("Gaze heatmap %s", "enabled" if enabled else "disabled")

    def add(self, x: float, y: float) -> Optional[tuple]:
        """Add heat around a gaze point. Returns the grid cell, or None when disabled."""
        if not self._enabled:
            return None
        if not (np.isfinite(x) and np.isfinite(y)):
            return None

        gx = int(np.floor(x * self._cols))
        gy = int(np.floor(y * self._rows))
        y0, y1 = max(0, gy - self._radius), min(self._rows - 1, gy + self._radius)
        x0, x1 = max(0, gx - self._radius), min(self._cols - 1, gx + self._radius)
        if y0 > y1 or x0 > x1:
            return gx, gy

        ys, xs = np.mgrid[y0:y1 + 1, x0:x1 + 1]
        distance = np.sqrt((xs - gx) ** 2 + (ys - gy) ** 2)
        heat = np.maximum(0.0, 1.0 - distance / self._falloff) * self._gain
        patch = self._grid[y0:y1 + 1, x0:x1 + 1]
        self._grid[y0:y1 + 1, x0:x1 + 1] = np.minimum(1.0, patch + heat)
        return gx, gy

    @property
    def grid(self) -> np.ndarray:
        return self._grid.copy()

    @property
    def peak(self) -> float:
        return float(self._grid.max())

    @property
    def mean(self) -> float:
        return float(self._grid.mean())

    @property
    def active_cells(self) -> int:
        return int(np.count_nonzero(self._grid))

    def reset(self):
        self._grid.fill(0.0)
