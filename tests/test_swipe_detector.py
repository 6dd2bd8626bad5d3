"""
Tests for Swipe Detection
=========================
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from focuszone.core.types import SwipeDirection
from focuszone.modules.recognition.swipe_detector import SwipeDetector


class TestSwipeDetector:

    @pytest.fixture
    def detector(self):
        return SwipeDetector()

    def test_needs_five_samples(self, detector):
        for i, x in enumerate((0.2, 0.3, 0.4, 0.5)):
            assert detector.update(x, 0.5, i * 33) is None

    def test_right_swipe(self, detector):
        results = [detector.update(0.2 + 0.05 * i, 0.5, i * 33) for i in range(5)]
        assert results[:4] == [None] * 4
        assert results[4] is SwipeDirection.RIGHT

    def test_left_swipe(self, detector):
        results = [detector.update(0.8 - 0.05 * i, 0.5, i * 33) for i in range(5)]
        assert results[4] is SwipeDirection.LEFT

    def test_history_cleared_on_detection(self, detector):
        for i in range(5):
            detector.update(0.2 + 0.05 * i, 0.5, i * 33)
        assert detector.history == []
        # The same motion cannot fire again on the next frame
        assert detector.update(0.45, 0.5, 200) is None

    def test_small_motion_ignored(self, detector):
        for i in range(10):
            assert detector.update(0.5 + 0.01 * i, 0.5, i * 33) is None

    def test_vertical_motion_ignored(self, detector):
        """Large |dy| disqualifies the swipe even with enough |dx|."""
        for i in range(5):
            result = detector.update(0.2 + 0.05 * i, 0.2 + 0.1 * i, i * 33)
        assert result is None

    def test_slight_vertical_drift_still_swipes(self, detector):
        """dx=0.2, dy=0.05 qualifies."""
        for i in range(5):
            result = detector.update(0.3 + 0.05 * i, 0.5 + 0.0125 * i, i * 33)
        assert result is SwipeDirection.RIGHT

    def test_mostly_vertical_does_not_swipe(self, detector):
        """dx=0.2, dy=0.5 does not qualify."""
        for i in range(5):
            result = detector.update(0.3 + 0.05 * i, 0.2 + 0.125 * i, i * 33)
        assert result is None

    def test_only_last_five_samples_compared(self, detector):
        """A slow drift over ten samples is not a swipe."""
        for i in range(10):
            result = detector.update(0.2 + 0.03 * i, 0.5, i * 33)
        assert result is None

    def test_history_capacity(self, detector):
        for i in range(25):
            detector.update(0.5, 0.5, i)
        assert len(detector.history) == 10

    def test_reset(self, detector):
        for i in range(4):
            detector.update(0.2 + 0.05 * i, 0.5, i * 33)
        detector.reset()
        assert detector.update(0.5, 0.5, 200) is None
        assert len(detector.history) == 1
