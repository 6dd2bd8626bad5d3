"""
Live landmark source: OpenCV camera capture + MediaPipe Face Mesh and Hands.

Only the ``camera`` extra needs this module; the core never imports it.
Each ``read()`` grabs one frame, runs both solutions on it and returns the
first face and first hand as normalized ``(N, 3)`` arrays (None when absent).
"""

import time
import logging
from typing import Optional, Tuple

import cv2
import numpy as np
import mediapipe as mp

from focuszone.modules.detection.landmarks import as_face_array, as_hand_array

logger = logging.getLogger(__name__)

Frame = Tuple[int, Optional[np.ndarray], Optional[np.ndarray]]


class LandmarkSource:
    """Synchronous camera + MediaPipe landmark reader."""

    def __init__(self, camera_config: dict = None, mediapipe_config: dict = None):
        camera_config = camera_config or {}
        mediapipe_config = mediapipe_config or {}

        self._device_id = camera_config.get("device_id", 0)
        self._width = camera_config.get("width", 640)
        self._height = camera_config.get("height", 480)
        self._fps = camera_config.get("fps", 30)
        self._flip_h = camera_config.get("flip_horizontal", True)
        self._warmup_frames = camera_config.get("warmup_frames", 5)

        self._min_detect_conf = mediapipe_config.get("min_detection_confidence", 0.5)
        self._min_track_conf = mediapipe_config.get("min_tracking_confidence", 0.5)
        self._model_complexity = mediapipe_config.get("model_complexity", 1)

        self._cap = None
        self._face_mesh = None
        self._hands = None
        self._frame_id = 0

    def open(self) -> bool:
        """Open the camera and the MediaPipe solutions. Returns False on failure."""
        self._cap = cv2.VideoCapture(self._device_id)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d", self._device_id)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)
        logger.info(
            "Camera opened: %dx%d @ %.0f FPS (requested %dx%d @ %d)",
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            self._cap.get(cv2.CAP_PROP_FPS),
            self._width, self._height, self._fps,
        )

        # Let auto-exposure settle
        for _ in range(self._warmup_frames):
            self._cap.read()

        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            model_complexity=self._model_complexity,
            max_num_hands=1,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        logger.info("MediaPipe Face Mesh and Hands initialized (detect_conf=%.2f, track_conf=%.2f)",
                    self._min_detect_conf, self._min_track_conf)
        return True

    def read(self) -> Optional[Frame]:
        """Capture one frame and extract landmarks.

        Returns:
            (timestamp_ms, face, hand), or None when the camera gave no frame
        """
        if self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None
        if self._flip_h:
            frame = cv2.flip(frame, 1)
        timestamp_ms = int(time.time() * 1000)
        self._frame_id += 1

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb.flags.writeable = False
        face_results = self._face_mesh.process(rgb)
        hand_results = self._hands.process(rgb)

        face = None
        if face_results.multi_face_landmarks:
            face = as_face_array(face_results.multi_face_landmarks[0])
        hand = None
        if hand_results.multi_hand_landmarks:
            hand = as_hand_array(hand_results.multi_hand_landmarks[0])

        return timestamp_ms, face, hand

    @property
    def frame_id(self) -> int:
        return self._frame_id

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def close(self):
        """Release the camera and MediaPipe resources."""
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None
        if self._hands is not None:
            self._hands.close()
            self._hands = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera released")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.close()
