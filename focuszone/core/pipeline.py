"""
Core pipeline orchestrator.

Single writer for all interpreter state. Upstream callbacks and UI commands
enter here; each is turned into session events and applied in order, and
every observable change is published on the EventBus.

Architecture:
    face frame -> FocusEstimator -> FocusStateBuffer -> FocusObserved
    hand frame -> GestureClassifier -> instant command | palm pause / swipe
               -> HandObserved -> GestureHoldTracker -> triggered command
    poll       -> Scheduler ticks -> Tick, FocusMeter steps

Nothing here blocks or spawns threads; the caller owns the loop.
"""

import logging
from typing import Optional

from focuszone.core.events import EventBus, Events
from focuszone.core.scheduler import Scheduler, Clock
from focuszone.core.session import (
    SessionStateMachine, SessionRules, CoreState,
    Advance, Start, End, TogglePause, ResumeCamera,
    HandObserved, SwipeObserved, FocusObserved, Tick,
)
from focuszone.core.types import (
    FocusSample, GestureLabel, SessionMetrics, SessionState, SessionRecord,
)
from focuszone.modules.control.hold_tracker import GestureHoldTracker
from focuszone.modules.detection.landmarks import as_face_array, as_hand_array, palm_center, NOSE_TIP
from focuszone.modules.intelligence.analytics import SessionHistory
from focuszone.modules.intelligence.attention import FocusMeter, GazeHeatmap
from focuszone.modules.recognition.focus_estimator import FocusEstimator
from focuszone.modules.recognition.gesture_classifier import GestureClassifier
from focuszone.modules.recognition.swipe_detector import SwipeDetector
from focuszone.modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

DEFAULT_INSTANT_GESTURES = ("fist", "peace")


class FocusPipeline:
    """Frame-driven focus/gesture/session interpreter."""

    def __init__(
        self,
        classifier: GestureClassifier,
        estimator: FocusEstimator,
        hold_tracker: GestureHoldTracker,
        swipe_detector: SwipeDetector,
        state_machine: SessionStateMachine,
        scheduler: Scheduler,
        history: SessionHistory = None,
        meter: FocusMeter = None,
        heatmap: GazeHeatmap = None,
        performance_monitor: PerformanceMonitor = None,
        event_bus: EventBus = None,
        config: dict = None,
    ):
        self._classifier = classifier
        self._estimator = estimator
        self._hold = hold_tracker
        self._swipe = swipe_detector
        self._machine = state_machine
        self._scheduler = scheduler
        self._history = history if history is not None else SessionHistory()
        self._meter = meter or FocusMeter()
        self._heatmap = heatmap or GazeHeatmap()
        self._perf = performance_monitor or PerformanceMonitor()
        self._bus = event_bus or EventBus()

        # Config (``recognition`` section)
        config = config or {}
        labels = (GestureLabel.from_string(name)
                  for name in config.get("instant_gestures", DEFAULT_INSTANT_GESTURES))
        self._instant = frozenset(label for label in labels if label.is_gesture)

        # Last published gesture readout
        self._published_gesture = (GestureLabel.NONE, 0)
        self._last_sample = None

    # =========================================================================
    # Event application
    # =========================================================================

    def _now(self, timestamp_ms: Optional[int]) -> int:
        return self._scheduler.now_ms() if timestamp_ms is None else int(timestamp_ms)

    def _dispatch(self, event) -> CoreState:
        previous, current = self._machine.dispatch(event)
        if current is not previous:
            self._after_transition(previous, current, event.at_ms)
        return current

    def _after_transition(self, previous: CoreState, current: CoreState, at_ms: int):
        was, now = previous.session, current.session

        if now != was:
            if now.is_running and not (was.is_running and self._scheduler.ticking):
                self._scheduler.start_ticker(at_ms)
            elif not now.is_running:
                self._scheduler.stop_ticker()

            if now.is_active and now.paused and not (was.is_active and was.paused):
                self._swipe.reset()
            if now.is_active and not was.is_active:
                self._swipe.reset()

        if now != was or current.metrics != previous.metrics:
            self._bus.emit(Events.SESSION_STATE_CHANGED, state=now, metrics=current.metrics)

        record = current.last_record
        if record is not None and record is not previous.last_record:
            self._history.archive(record)
            self._bus.emit(Events.SESSION_ARCHIVED, record=record)

    # =========================================================================
    # Upstream: face frames
    # =========================================================================

    def on_face_frame(self, landmarks, timestamp_ms: int = None) -> Optional[FocusSample]:
        """Process one face frame (None = no face detected).

        Returns:
            The FocusSample, or None if the frame was dropped (session ENDED)
        """
        now = self._now(timestamp_ms)
        with self._perf.measure("face"):
            state = self._dispatch(Advance(now))
            if state.session.is_ended:
                return None

            face = as_face_array(landmarks)
            sample = self._estimator.estimate(face)

            if face is not None and self._heatmap.enabled:
                self._heatmap.add(face[NOSE_TIP, 0], face[NOSE_TIP, 1])

            previous = self._machine.state
            current = self._dispatch(FocusObserved(now, sample.debounced))
            self._last_sample = sample
            self._bus.emit(Events.FOCUS_CHANGED, sample=sample)

            if previous.focused and not current.focused and previous.session.is_running:
                counted = current.metrics.distraction_count > previous.metrics.distraction_count
                self._bus.emit(Events.DISTRACTION, counted=counted, at_ms=now)

        return sample

    # =========================================================================
    # Upstream: hand frames
    # =========================================================================

    def on_hand_frame(self, landmarks, timestamp_ms: int = None) -> Optional[GestureLabel]:
        """Process one hand frame (None = no hand detected).

        Returns:
            The classified GestureLabel, or None if the frame was dropped
        """
        now = self._now(timestamp_ms)
        with self._perf.measure("hand"):
            state = self._dispatch(Advance(now))
            if state.session.is_ended:
                return None

            hand = as_hand_array(landmarks)
            label = self._classifier.classify(hand)
            self._route_gesture(label, hand, state.session, now)
            self._publish_gesture(label)

        return label

    def _route_gesture(self, label: GestureLabel, hand, session: SessionState, now: int):
        # Instant gestures act on first sight and skip the hold logic
        if label in self._instant:
            if label is GestureLabel.FIST and session.is_idle:
                self._dispatch(Start(now, source="gesture"))
                return
            if label is GestureLabel.PEACE and session.is_active:
                self._dispatch(End(now, source="gesture"))
                return

        self._dispatch(HandObserved(now, label, present=hand is not None))

        if label is GestureLabel.OPEN_PALM and session.is_active and session.paused:
            x, y = palm_center(hand)
            direction = self._swipe.update(x, y, now)
            if direction is not None:
                self._bus.emit(Events.SWIPE_RESUME, direction=direction)
                self._dispatch(SwipeObserved(now))
            return

        if self._hold.update(label):
            self._bus.emit(Events.GESTURE_TRIGGERED, label=label)
            self._apply_trigger(label, now)

    def _apply_trigger(self, label: GestureLabel, now: int):
        if label is GestureLabel.FIST:
            self._dispatch(Start(now, source="hold"))
        elif label is GestureLabel.PEACE:
            self._dispatch(End(now, source="hold"))

    def _publish_gesture(self, label: GestureLabel):
        hold = self._hold.state
        readout = (label, hold.hold_frames if hold.current_gesture is label else 0)
        if readout != self._published_gesture:
            self._published_gesture = readout
            self._bus.emit(Events.GESTURE_CHANGED, label=readout[0], hold_frames=readout[1])

    # =========================================================================
    # Timers
    # =========================================================================

    def poll(self, now_ms: int = None) -> int:
        """Apply due 1 Hz ticks and step the focus meter.

        Returns:
            Number of session ticks applied
        """
        now = self._now(now_ms)
        with self._perf.measure("tick"):
            self._dispatch(Advance(now))
            due = self._scheduler.due_ticks(now)
            for _ in range(due):
                self._dispatch(Tick(now))

            state = self._machine.state
            self._meter.advance(now, state.session, state.focused)
        return due

    # =========================================================================
    # Manual commands
    # =========================================================================

    def start_session(self, timestamp_ms: int = None) -> bool:
        """Start a session. Returns True if the session became active."""
        now = self._now(timestamp_ms)
        self._dispatch(Advance(now))
        return self._dispatch(Start(now, source="manual")).session.is_active

    def toggle_pause(self, timestamp_ms: int = None) -> bool:
        """Pause or resume. Returns the new paused flag."""
        now = self._now(timestamp_ms)
        previous = self._dispatch(Advance(now))
        current = self._dispatch(TogglePause(now))
        if previous.session.paused and not current.session.paused:
            self._meter.set_level(100)
        return current.session.paused

    def end_session(self, timestamp_ms: int = None) -> Optional[SessionRecord]:
        """End the session. Returns the archived record, or None if idle."""
        now = self._now(timestamp_ms)
        previous = self._dispatch(Advance(now))
        current = self._dispatch(End(now, source="manual"))
        if current.last_record is previous.last_record:
            return None
        return current.last_record

    def resume_camera(self, timestamp_ms: int = None) -> bool:
        """Leave the post-session camera pause early. Returns True if idle."""
        now = self._now(timestamp_ms)
        self._dispatch(Advance(now))
        return self._dispatch(ResumeCamera(now)).session.is_idle

    # =========================================================================
    # Readouts
    # =========================================================================

    @property
    def state(self) -> CoreState:
        return self._machine.state

    @property
    def session(self) -> SessionState:
        return self._machine.state.session

    @property
    def metrics(self) -> SessionMetrics:
        return self._machine.state.metrics

    @property
    def focused(self) -> bool:
        return self._machine.state.focused

    @property
    def last_sample(self) -> Optional[FocusSample]:
        return self._last_sample

    @property
    def hold_state(self):
        return self._hold.state

    @property
    def hold_tracker(self) -> GestureHoldTracker:
        return self._hold

    @property
    def history(self) -> SessionHistory:
        return self._history

    @property
    def meter(self) -> FocusMeter:
        return self._meter

    @property
    def heatmap(self) -> GazeHeatmap:
        return self._heatmap

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def performance(self) -> PerformanceMonitor:
        return self._perf


def build_pipeline(config: dict = None, clock: Clock = None,
                   event_bus: EventBus = None, seed: int = None) -> FocusPipeline:
    """Wire a FocusPipeline from a full config dict (see config/config.yaml)."""
    config = config or {}
    recognition = config.get("recognition", {}) or {}
    session = config.get("session", {}) or {}
    attention = config.get("attention", {}) or {}
    performance = config.get("performance", {}) or {}

    return FocusPipeline(
        classifier=GestureClassifier(recognition.get("gesture", {})),
        estimator=FocusEstimator(config.get("focus", {}), seed=seed),
        hold_tracker=GestureHoldTracker(recognition.get("hold", {})),
        swipe_detector=SwipeDetector(recognition.get("swipe", {})),
        state_machine=SessionStateMachine(SessionRules.from_dict(session)),
        scheduler=Scheduler(clock, interval_ms=session.get("tick_interval_ms", 1000)),
        history=SessionHistory(max_records=session.get("history_size", 0)),
        meter=FocusMeter(attention.get("meter", {})),
        heatmap=GazeHeatmap(attention.get("heatmap", {})),
        performance_monitor=PerformanceMonitor(
            window_size=performance.get("window_size", 100),
            enabled=performance.get("enabled", True),
        ),
        event_bus=event_bus,
        config=recognition,
    )
