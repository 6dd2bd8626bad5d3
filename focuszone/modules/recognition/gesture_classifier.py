"""
Rule-based static gesture classifier over 21-point hand landmarks.

Finger extension is the binary ``tip.y < joint.y`` test in image
coordinates (y grows downward). Rules are evaluated in a fixed order and the
first match wins; the order is part of the contract because the thresholds
are loose enough for two rules to match the same hand.
"""

import logging

import numpy as np

from focuszone.core.types import GestureLabel
from focuszone.modules.detection.landmarks import (
    as_hand_array, FINGER_TIP_JOINTS, WRIST, THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP,
)

logger = logging.getLogger(__name__)


class GestureClassifier:
    """Classifies one hand frame into a GestureLabel. Never raises."""

    def __init__(self, config: dict = None):
        """Initialize the classifier.

        Args:
            config: ``recognition.gesture`` section from config.yaml
        """
        config = config or {}
        self._open_palm_spread = config.get("open_palm_spread", 0.05)
        self._peace_spread = config.get("peace_spread", 0.03)
        self._open_palm_min_fingers = config.get("open_palm_min_fingers", 4)
        # With the thumb ignored, every only-thumb hand is already a FIST and
        # the THUMBS_* rules never match
        self._fist_ignores_thumb = config.get("fist_ignores_thumb", True)

    def classify(self, landmarks) -> GestureLabel:
        """Classify gesture from hand landmarks.

        Args:
            landmarks: (21, 3) normalized landmarks, any form accepted by
                ``as_hand_array``, or None for an absent hand

        Returns:
            GestureLabel (NONE for absent or degenerate input)
        """
        hand = as_hand_array(landmarks)
        if hand is None:
            return GestureLabel.NONE

        fingers = self.get_finger_states(hand)
        four = (fingers["index"], fingers["middle"], fingers["ring"], fingers["pinky"])

        index_middle = abs(hand[INDEX_TIP, 0] - hand[MIDDLE_TIP, 0])
        middle_ring = abs(hand[MIDDLE_TIP, 0] - hand[RING_TIP, 0])

        if not any(four) and (self._fist_ignores_thumb or not fingers["thumb"]):
            return GestureLabel.FIST

        if (sum(fingers.values()) >= self._open_palm_min_fingers
                and index_middle > self._open_palm_spread
                and middle_ring > self._open_palm_spread):
            return GestureLabel.OPEN_PALM

        if (fingers["index"] and fingers["middle"]
                and not fingers["ring"] and not fingers["pinky"]
                and index_middle > self._peace_spread):
            return GestureLabel.PEACE

        only_thumb = fingers["thumb"] and not any(four)
        if only_thumb and hand[THUMB_TIP, 1] < hand[WRIST, 1]:
            return GestureLabel.THUMBS_UP
        if only_thumb and hand[THUMB_TIP, 1] > hand[WRIST, 1]:
            return GestureLabel.THUMBS_DOWN

        return GestureLabel.NONE

    @staticmethod
    def get_finger_states(hand: np.ndarray) -> dict:
        """Determine which fingers are extended.

        Returns:
            dict with finger names -> bool (True = extended)
        """
        return {
            name: bool(hand[tip, 1] < hand[joint, 1])
            for name, (tip, joint) in FINGER_TIP_JOINTS.items()
        }
