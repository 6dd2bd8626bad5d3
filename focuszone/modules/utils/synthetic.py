"""
Synthetic landmark frames.

Builds MediaPipe-shaped face and hand arrays with known geometry so the
simulation mode and the tests can drive the pipeline without a camera.
Coordinates are normalized, y grows downward.
"""

import numpy as np

from focuszone.core.types import GestureLabel
from focuszone.modules.detection import landmarks as lm

# Fingertip x positions, spread wide enough for OPEN_PALM and PEACE
_FINGER_X = {"index": 0.40, "middle": 0.48, "ring": 0.56, "pinky": 0.64}
_FINGER_JOINTS = {
    "index": (lm.INDEX_MCP, lm.INDEX_PIP, lm.INDEX_DIP, lm.INDEX_TIP),
    "middle": (lm.MIDDLE_MCP, lm.MIDDLE_PIP, lm.MIDDLE_DIP, lm.MIDDLE_TIP),
    "ring": (lm.RING_MCP, lm.RING_PIP, lm.RING_DIP, lm.RING_TIP),
    "pinky": (lm.PINKY_MCP, lm.PINKY_PIP, lm.PINKY_DIP, lm.PINKY_TIP),
}

_GESTURE_FINGERS = {
    GestureLabel.FIST: set(),
    GestureLabel.OPEN_PALM: {"thumb", "index", "middle", "ring", "pinky"},
    GestureLabel.PEACE: {"index", "middle"},
    GestureLabel.THUMBS_UP: {"thumb"},
    GestureLabel.THUMBS_DOWN: {"thumb"},
    GestureLabel.NONE: {"index"},
}


def hand_frame(extended=(), offset_x: float = 0.0, offset_y: float = 0.0,
               thumb_down: bool = False) -> np.ndarray:
    """Build a (21, 3) hand with the named fingers extended.

    Args:
        extended: finger names among thumb/index/middle/ring/pinky
        offset_x, offset_y: translation applied to every point
        thumb_down: place the thumb below the wrist (for THUMBS_DOWN)
    """
    extended = set(extended)
    hand = np.zeros((lm.HAND_POINT_COUNT, 3), dtype=np.float64)
    hand[lm.WRIST] = (0.5, 0.8, 0.0)

    for name, (mcp, pip, dip, tip) in _FINGER_JOINTS.items():
        x = _FINGER_X[name]
        hand[mcp] = (x, 0.6, 0.0)
        hand[pip] = (x, 0.5, 0.0)
        if name in extended:
            hand[dip] = (x, 0.4, 0.0)
            hand[tip] = (x, 0.3, 0.0)
        else:
            hand[dip] = (x, 0.55, 0.0)
            hand[tip] = (x, 0.6, 0.0)

    # Thumb: extended means tip above the IP joint
    if thumb_down:
        hand[lm.THUMB_CMC] = (0.35, 0.82, 0.0)
        hand[lm.THUMB_MCP] = (0.33, 0.86, 0.0)
        hand[lm.THUMB_IP] = (0.32, 0.90, 0.0)
        hand[lm.THUMB_TIP] = (0.31, 0.85 if "thumb" in extended else 0.95, 0.0)
    else:
        hand[lm.THUMB_CMC] = (0.40, 0.75, 0.0)
        hand[lm.THUMB_MCP] = (0.35, 0.70, 0.0)
        hand[lm.THUMB_IP] = (0.32, 0.60, 0.0)
        hand[lm.THUMB_TIP] = (0.30, 0.50 if "thumb" in extended else 0.70, 0.0)

    hand[:, 0] += offset_x
    hand[:, 1] += offset_y
    return hand


def gesture_frame(label: GestureLabel, offset_x: float = 0.0, offset_y: float = 0.0) -> np.ndarray:
    """Build a hand that classifies as ``label`` under default thresholds.

    THUMBS_UP / THUMBS_DOWN only classify as such with
    ``fist_ignores_thumb: false``.
    """
    label = GestureLabel.from_string(label)
    return hand_frame(
        _GESTURE_FINGERS[label],
        offset_x=offset_x,
        offset_y=offset_y,
        thumb_down=label is GestureLabel.THUMBS_DOWN,
    )


def swipe_frames(direction: str = "right", steps: int = 5, span: float = 0.25) -> list:
    """Open-palm frames moving horizontally by ``span`` over ``steps`` frames."""
    sign = 1.0 if direction == "right" else -1.0
    offsets = np.linspace(0.0, sign * span, steps)
    return [gesture_frame(GestureLabel.OPEN_PALM, offset_x=float(dx)) for dx in offsets]


def face_frame(nose_x: float = 0.5, eye_gap: float = 0.16, nose_chin: float = 0.2,
               refined: bool = True) -> np.ndarray:
    """Build a face mesh with controllable focus cues.

    Args:
        nose_x: nose tip x (centred when within 0.2 of 0.5)
        eye_gap: horizontal distance between the eye anchors
        nose_chin: vertical nose-to-chin distance
        refined: include the iris points (478 points) or not (468)
    """
    count = lm.FACE_POINT_COUNT + (10 if refined else 0)
    face = np.full((count, 3), 0.5, dtype=np.float64)
    face[:, 2] = 0.0

    face[lm.NOSE_TIP] = (nose_x, 0.5, 0.0)
    face[lm.CHIN] = (nose_x, 0.5 + nose_chin, 0.0)

    left = (nose_x - eye_gap / 2, 0.4, 0.0)
    right = (nose_x + eye_gap / 2, 0.4, 0.0)
    face[lm.LEFT_EYE_OUTER] = left
    face[lm.RIGHT_EYE_OUTER] = right
    if refined:
        face[lm.LEFT_IRIS] = left
        face[lm.RIGHT_IRIS] = right
    return face


def focused_face(**kwargs) -> np.ndarray:
    """All three cues satisfied (strength 1.0)."""
    return face_frame(**kwargs)


def unfocused_face(**kwargs) -> np.ndarray:
    """Turned away: off-centre with the eyes collapsed (strength 0.3)."""
    kwargs.setdefault("nose_x", 0.85)
    kwargs.setdefault("eye_gap", 0.02)
    return face_frame(**kwargs)
