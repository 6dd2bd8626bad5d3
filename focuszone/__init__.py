"""
FocusZone Core
==============

Real-time interpretation of face and hand landmark streams into an
attention state, hand gestures, swipe events and a focus-session lifecycle.

Modules:
    - core: Shared types, event bus, clock/scheduler, session state machine, pipeline
    - detection: Landmark array normalization and anchor indices
    - recognition: Gesture classification, focus estimation, swipe detection
    - control: Gesture hold/dwell tracking
    - intelligence: Session history analytics and attention readouts
    - capture: Optional live camera source (OpenCV + MediaPipe)
    - utils: Configuration, logging, performance monitoring, synthetic frames
"""

__version__ = "1.0.0"
__author__ = "FocusZone Team"
