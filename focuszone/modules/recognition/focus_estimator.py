"""
Attention estimation from face mesh landmarks.

Three geometric cues from fixed anchors (nose centring, eye separation,
nose-to-chin height) are weighted into a focus strength. The per-frame
result is smoothed twice: the displayed score by an exponential moving
average, and the focus boolean by a majority vote over the last few
frames so a single misread frame cannot flip it.
"""

import logging
from collections import deque
from typing import Optional

import numpy as np

from focuszone.core.types import FocusSample
from focuszone.modules.detection.landmarks import as_face_array, eye_anchors, NOSE_TIP, CHIN

logger = logging.getLogger(__name__)


class FocusStateBuffer:
    """Fixed-capacity window of raw focus cues with a majority vote."""

    def __init__(self, capacity: int = 3, min_votes: int = 2):
        self._window = deque(maxlen=max(1, capacity))
        self._min_votes = min_votes

    def push(self, focused: bool) -> bool:
        """Add one raw cue and return the debounced boolean."""
        self._window.append(bool(focused))
        return self.debounced

    @property
    def debounced(self) -> bool:
        return sum(self._window) >= self._min_votes

    @property
    def capacity(self) -> int:
        return self._window.maxlen

    def __len__(self):
        return len(self._window)

    def reset(self):
        self._window.clear()


class FocusEstimator:
    """Turns face frames into FocusSamples.

    Holds the smoothed score and the vote buffer between frames; everything
    else is recomputed per frame.
    """

    def __init__(self, config: dict = None, seed: Optional[int] = None):
        """Initialize the estimator.

        Args:
            config: ``focus`` section from config.yaml
            seed: Seed for the score jitter (overrides ``focus.seed``)
        """
        config = config or {}
        self._center_tolerance = config.get("center_tolerance", 0.2)
        self._min_eye_distance = config.get("min_eye_distance", 0.1)
        self._min_nose_chin = config.get("min_nose_chin", 0.08)

        weights = config.get("weights", {})
        self._w_centered = weights.get("centered", 0.4)
        self._w_eyes = weights.get("eyes", 0.3)
        self._w_upright = weights.get("upright", 0.3)
        self._threshold = config.get("threshold", 0.7)

        self._alpha = config.get("smoothing_alpha", 0.6)
        self._focused_base = config.get("focused_base", 95)
        self._unfocused_base = config.get("unfocused_base", 25)
        self._focused_jitter = config.get("focused_jitter", 5.0)
        self._unfocused_jitter = config.get("unfocused_jitter", 15.0)
        self._jitter = config.get("jitter", True)

        self._rng = np.random.default_rng(seed if seed is not None else config.get("seed"))
        self._buffer = FocusStateBuffer(
            capacity=config.get("buffer_size", 3),
            min_votes=config.get("min_votes", 2),
        )
        self._smoothed = 0

    # -------------------------------------------------------------------------

    def focus_strength(self, face: np.ndarray) -> float:
        """Weighted sum of the three head-pose cues, 0.0 - 1.0."""
        nose = face[NOSE_TIP]
        chin = face[CHIN]
        left_eye, right_eye = eye_anchors(face)

        centered = abs(nose[0] - 0.5) < self._center_tolerance
        eyes_apart = abs(left_eye[0] - right_eye[0]) > self._min_eye_distance
        upright = abs(nose[1] - chin[1]) > self._min_nose_chin

        strength = (
            (self._w_centered if centered else 0.0)
            + (self._w_eyes if eyes_apart else 0.0)
            + (self._w_upright if upright else 0.0)
        )
        # Rounded so 0.4 + 0.3 compares equal to a 0.7 threshold
        return round(strength, 6)

    @staticmethod
    def gaze_direction(face: np.ndarray) -> str:
        nose_x = face[NOSE_TIP, 0]
        if nose_x > 0.6:
            return "right"
        if nose_x < 0.4:
            return "left"
        return "forward"

    def raw_score(self, focused: bool) -> float:
        if focused:
            base, spread = self._focused_base, self._focused_jitter
        else:
            base, spread = self._unfocused_base, self._unfocused_jitter
        jitter = self._rng.uniform(0.0, spread) if self._jitter and spread > 0 else 0.0
        return min(100.0, base + jitter)

    def _smooth(self, raw: float) -> int:
        self._smoothed = int(round(self._smoothed * (1.0 - self._alpha) + raw * self._alpha))
        return self._smoothed

    # -------------------------------------------------------------------------

    def score(self, landmarks) -> FocusSample:
        """Compute the raw and smoothed score for one frame.

        Does not touch the vote buffer; ``debounced`` carries the current
        buffered value. Use ``estimate`` for the full per-frame update.
        """
        face = as_face_array(landmarks)
        if face is None:
            return FocusSample(
                raw_score=0,
                smoothed_score=self._smooth(0.0),
                focused=False,
                debounced=self._buffer.debounced,
                direction="away",
                face_present=False,
            )

        focused = self.focus_strength(face) >= self._threshold
        raw = self.raw_score(focused)
        return FocusSample(
            raw_score=int(round(raw)),
            smoothed_score=self._smooth(raw),
            focused=focused,
            debounced=self._buffer.debounced,
            direction=self.gaze_direction(face),
            face_present=True,
        )

    def debounce(self, sample: FocusSample) -> FocusSample:
        """Push the sample's raw cue into the vote buffer."""
        debounced = self._buffer.push(sample.focused)
        return FocusSample(
            raw_score=sample.raw_score,
            smoothed_score=sample.smoothed_score,
            focused=sample.focused,
            debounced=debounced,
            direction=sample.direction,
            face_present=sample.face_present,
        )

    def estimate(self, landmarks) -> FocusSample:
        """Score a frame and update the debounced focus boolean."""
        return self.debounce(self.score(landmarks))

    @property
    def smoothed_score(self) -> int:
        return self._smoothed

    @property
    def debounced(self) -> bool:
        return self._buffer.debounced

    @property
    def buffer(self) -> FocusStateBuffer:
        return self._buffer

    def reset(self):
        self._smoothed = 0
        self._buffer.reset()
