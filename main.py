#!/usr/bin/env python3
"""
FocusZone - gesture-controlled focus sessions from face and hand landmarks.
Application entry point.

Usage:
    python main.py                    # Live camera (requires the camera extra)
    python main.py --mode simulate    # Scripted session on synthetic landmarks
    python main.py --log-level DEBUG  # Verbose logging
"""

import sys
import os
import time
import signal
import argparse
import logging

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from focuszone import __version__
from focuszone.core.events import EventBus, Events
from focuszone.core.pipeline import build_pipeline
from focuszone.core.scheduler import ManualClock, SystemClock
from focuszone.core.types import GestureLabel
from focuszone.modules.intelligence.attention import focus_status_text
from focuszone.modules.utils import synthetic
from focuszone.modules.utils.config import Config
from focuszone.modules.utils.logger import setup_logging, SessionLogger

logger = logging.getLogger(__name__)

# (seconds, face, hand) steps of the simulated session
SIMULATION_SCRIPT = [
    (2.0, "focused", None),
    (0.1, "focused", "fist"),      # instant start
    (8.0, "focused", None),
    (3.0, "away", None),           # one counted distraction
    (4.0, "focused", None),
    (1.0, "focused", "palm"),      # pause
    (0.0, "focused", "swipe"),     # swipe to resume, stops on the resuming frame
    (6.0, "focused", None),
    (0.1, "focused", "peace"),     # instant end
    (4.0, "focused", None),        # camera pause, then idle
]


class FocusZoneApp:
    """Owns the pipeline and runs the live or simulated frame loop."""

    def __init__(self, config: Config, mode: str = "live"):
        self._config = config
        self._mode = mode
        self._running = False

        self._fps = config.get("camera.fps", 30)
        self._clock = ManualClock(0) if mode == "simulate" else SystemClock()
        self._bus = EventBus()
        self._pipeline = build_pipeline(
            config.data,
            clock=self._clock,
            event_bus=self._bus,
            seed=config.get("focus.seed"),
        )
        self._pipeline.heatmap.set_enabled(config.get("attention.heatmap.enabled", False))

        self._session_logger = SessionLogger().attach(self._bus)
        self._bus.subscribe(Events.SWIPE_RESUME, self._on_swipe)
        self._bus.subscribe(Events.FOCUS_CHANGED, self._on_focus_changed)
        self._last_status = None

        logger.info("FocusZoneApp initialized (mode=%s)", mode)

    def _on_swipe(self, direction=None, **_):
        logger.info("Swipe %s — resuming", direction.value)

    def _on_focus_changed(self, sample=None, **_):
        status = focus_status_text(sample.smoothed_score)
        if status != self._last_status:
            self._last_status = status
            logger.info("Focus: %-8s (score %d, looking %s)",
                        status, sample.smoothed_score, sample.direction)

    # -------------------------------------------------------------------------

    def start(self) -> bool:
        self._running = True
        logger.info("Starting main loop (mode=%s)", self._mode)
        if self._mode == "simulate":
            self._run_simulation()
            return True
        return self._run_live()

    def _run_live(self) -> bool:
        """Camera loop: one face + hand read per frame, timers polled every pass."""
        from focuszone.modules.capture.landmark_source import LandmarkSource

        source = LandmarkSource(self._config.camera, self._config.mediapipe)
        if not source.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            return False

        try:
            while self._running:
                frame = source.read()
                if frame is None:
                    time.sleep(0.005)
                    self._pipeline.poll()
                    continue
                timestamp_ms, face, hand = frame
                self._pipeline.on_face_frame(face, timestamp_ms)
                self._pipeline.on_hand_frame(hand, timestamp_ms)
                self._pipeline.poll(timestamp_ms)
        finally:
            source.close()
            self._shutdown()
        return True

    def _run_simulation(self):
        """Play SIMULATION_SCRIPT at the configured frame rate on a manual clock."""
        frame_ms = int(round(1000 / max(self._fps, 1)))
        swipe = synthetic.swipe_frames("right")
        hands = {
            None: None,
            "fist": synthetic.gesture_frame(GestureLabel.FIST),
            "palm": synthetic.gesture_frame(GestureLabel.OPEN_PALM),
            "peace": synthetic.gesture_frame(GestureLabel.PEACE),
        }
        faces = {
            "focused": synthetic.focused_face(),
            "away": synthetic.unfocused_face(),
        }

        for seconds, face_kind, hand_kind in SIMULATION_SCRIPT:
            frames = max(1, int(round(seconds * 1000 / frame_ms)))
            if hand_kind == "swipe":
                frames = len(swipe)
            for i in range(frames):
                if not self._running:
                    break
                now = self._clock.advance(frame_ms)
                hand = swipe[i % len(swipe)] if hand_kind == "swipe" else hands[hand_kind]
                self._pipeline.on_face_frame(faces[face_kind], now)
                self._pipeline.on_hand_frame(hand, now)
                self._pipeline.poll(now)
                if hand_kind == "swipe" and not self._pipeline.session.paused:
                    break

        self._shutdown()

    def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        if self._pipeline.session.is_active:
            self._pipeline.end_session()

        self._pipeline.performance.print_report()
        self._pipeline.history.print_summary()
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args():
    parser = argparse.ArgumentParser(
        description="FocusZone - gesture-controlled focus sessions"
    )
    parser.add_argument(
        "--mode", choices=["live", "simulate"],
        default="live", help="Operating mode"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Logging level (overrides logging.level)"
    )
    return parser.parse_args()


def main():
    args = parse_args()

    overrides = {}
    if args.camera is not None:
        overrides["camera"] = {"device_id": args.camera}

    config = Config()
    config.load(config_path=args.config, overrides=overrides)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=args.log_level or log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  FOCUSZONE")
    logger.info("  Version: %s", __version__)
    logger.info("  Mode: %s", args.mode)
    logger.info("=" * 60)

    app = FocusZoneApp(config, mode=args.mode)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    ok = app.start()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
