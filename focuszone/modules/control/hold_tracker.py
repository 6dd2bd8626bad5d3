"""
Fire-once gesture dwell tracker.

A gesture acts only after it has been seen on enough consecutive frames,
and then exactly once until the hand shows something else:

    same label (not NONE)   -> hold_frames += 1
    any change or NONE      -> hold_frames = 0, re-armed
    hold_frames > required  -> trigger once, then locked until release

The dwell is expressed in seconds and converted to frames at an assumed
frame rate, so it is only as accurate as the upstream cadence.
"""

import logging

from focuszone.core.types import GestureLabel, GestureHoldState

logger = logging.getLogger(__name__)


class GestureHoldTracker:
    """Counts consecutive identical gesture frames and fires once per hold."""

    def __init__(self, config: dict = None):
        """Initialize the tracker.

        Args:
            config: ``recognition.hold`` section from config.yaml
        """
        config = config or {}
        self._sensitivity_s = config.get("sensitivity_s", 0.7)
        self._assumed_fps = config.get("assumed_fps", 30)
        self._min_frames = config.get("min_frames", 5)

        self._gesture = GestureLabel.NONE
        self._hold_frames = 0
        self._triggered = False

    @property
    def required_frames(self) -> float:
        """Frames a gesture must be held beyond before it triggers."""
        return max(float(self._min_frames), self._sensitivity_s * self._assumed_fps)

    def set_sensitivity(self, seconds: float):
        self._sensitivity_s = seconds
        logger.info("Gesture hold sensitivity set to %.2fs (%.1f frames)",
                    seconds, self.required_frames)

    def update(self, label: GestureLabel) -> bool:
        """Feed one frame's label.

        Returns:
            True only on the frame a new trigger fires
        """
        if label is self._gesture and label.is_gesture:
            self._hold_frames += 1
        else:
            if self._triggered:
                logger.debug("Gesture released: %s -> %s, re-armed",
                             self._gesture.value, label.value)
            self._hold_frames = 0
            self._triggered = False
        self._gesture = label

        if (label.is_gesture
                and not self._triggered
                and self._hold_frames > self.required_frames):
            self._triggered = True
            logger.debug("Gesture '%s' held %d frames — triggered",
                         label.value, self._hold_frames)
            return True

        return False

    @property
    def state(self) -> GestureHoldState:
        return GestureHoldState(self._gesture, self._hold_frames, self._triggered)

    @property
    def hold_frames(self) -> int:
        return self._hold_frames

    @property
    def progress(self) -> float:
        """Hold progress toward the trigger, 0.0 - 1.0."""
        return min(1.0, self._hold_frames / max(self.required_frames, 1))

    def reset(self):
        """Clear all state."""
        self._gesture = GestureLabel.NONE
        self._hold_frames = 0
        self._triggered = False
