"""
Landmark array normalization and anchor indices.

Upstream perception delivers normalized points in several shapes (numpy
arrays, MediaPipe landmark lists, plain tuples or dicts). Everything is
normalized here to an ``(N, 3)`` float array so the recognizers only ever
deal with one representation. Degenerate input becomes ``None``, which the
recognizers treat as an absent frame.
"""

import logging
from collections.abc import Mapping
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

HAND_POINT_COUNT = 21

# (tip, proximal joint) pairs used for the extended-finger test
FINGER_TIP_JOINTS = {
    "thumb":  (THUMB_TIP, THUMB_IP),
    "index":  (INDEX_TIP, INDEX_PIP),
    "middle": (MIDDLE_TIP, MIDDLE_PIP),
    "ring":   (RING_TIP, RING_PIP),
    "pinky":  (PINKY_TIP, PINKY_PIP),
}

# Swipes track the middle-finger MCP as the palm centre
PALM_CENTER = MIDDLE_MCP

# MediaPipe Face Mesh anchors
FACE_POINT_COUNT = 468
NOSE_TIP = 1
CHIN = 152
LEFT_EYE_OUTER = 33
RIGHT_EYE_OUTER = 263
LEFT_IRIS = 468   # only present with refine_landmarks (478 points)
RIGHT_IRIS = 473


def _point_to_xyz(point) -> tuple:
    if isinstance(point, Mapping):
        return (point["x"], point["y"], point.get("z", 0.0))
    if hasattr(point, "x") and hasattr(point, "y"):
        return (point.x, point.y, getattr(point, "z", 0.0) or 0.0)
    values = list(point)
    if len(values) == 2:
        values.append(0.0)
    return (values[0], values[1], values[2])


def as_landmark_array(frame, min_points: int = 1) -> Optional[np.ndarray]:
    """Normalize a landmark frame to a float ``(N, 3)`` array.

    Args:
        frame: ndarray, sequence of points, or an object with a
            ``landmark`` attribute (MediaPipe NormalizedLandmarkList).
        min_points: Frames with fewer points are treated as absent.

    Returns:
        ``(N, 3)`` float64 array, or None for absent/degenerate input.
    """
    if frame is None:
        return None

    if hasattr(frame, "landmark"):
        frame = frame.landmark

    try:
        if isinstance(frame, np.ndarray):
            arr = np.asarray(frame, dtype=np.float64)
        else:
            arr = np.array([_point_to_xyz(p) for p in frame], dtype=np.float64)
    except (TypeError, ValueError, KeyError, IndexError) as e:
        logger.debug("Discarding malformed landmark frame: %s", e)
        return None

    if arr.ndim != 2 or arr.shape[0] < max(min_points, 1) or arr.shape[1] < 2:
        return None
    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((arr.shape[0], 1))])
    elif arr.shape[1] > 3:
        arr = arr[:, :3]

    if not np.all(np.isfinite(arr[:, :2])):
        return None
    return arr


def as_hand_array(frame) -> Optional[np.ndarray]:
    """Normalize a hand frame; fewer than 21 points counts as absent."""
    return as_landmark_array(frame, min_points=HAND_POINT_COUNT)


def as_face_array(frame) -> Optional[np.ndarray]:
    """Normalize a face frame; fewer than 468 points counts as absent."""
    return as_landmark_array(frame, min_points=FACE_POINT_COUNT)


def palm_center(hand: np.ndarray) -> np.ndarray:
    """(x, y) of the palm centre landmark."""
    return hand[PALM_CENTER, :2]


def eye_anchors(face: np.ndarray) -> tuple:
    """Left/right eye points, iris centres when the mesh is refined."""
    if face.shape[0] > RIGHT_IRIS:
        return face[LEFT_IRIS], face[RIGHT_IRIS]
    return face[LEFT_EYE_OUTER], face[RIGHT_EYE_OUTER]
