"""
Tests for the Focus Pipeline
============================
End-to-end behaviour on synthetic landmarks and a manual clock.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from focuszone.core.events import EventBus, Events
from focuszone.core.pipeline import build_pipeline
from focuszone.core.scheduler import ManualClock
from focuszone.core.types import GestureLabel, SessionState, SwipeDirection
from focuszone.modules.utils.synthetic import (
    gesture_frame, swipe_frames, focused_face, unfocused_face,
)

FIST = gesture_frame(GestureLabel.FIST)
PALM = gesture_frame(GestureLabel.OPEN_PALM)
PEACE = gesture_frame(GestureLabel.PEACE)
NEUTRAL = gesture_frame(GestureLabel.NONE)


class Recorder:
    """Collects every published event as (name, kwargs)."""

    def __init__(self, bus):
        self.events = []
        for name in (Events.FOCUS_CHANGED, Events.DISTRACTION, Events.GESTURE_CHANGED,
                     Events.GESTURE_TRIGGERED, Events.SWIPE_RESUME,
                     Events.SESSION_STATE_CHANGED, Events.SESSION_ARCHIVED):
            bus.subscribe(name, lambda _name=name, **kw: self.events.append((_name, kw)))

    def of(self, name):
        return [kw for n, kw in self.events if n == name]


@pytest.fixture
def clock():
    return ManualClock(0)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return Recorder(bus)


@pytest.fixture
def pipeline(clock, bus):
    return build_pipeline({"focus": {"jitter": False}}, clock=clock, event_bus=bus)


def warm_focus(pipeline, t=0, frames=3):
    for _ in range(frames):
        pipeline.on_face_frame(focused_face(), t)


class TestEndToEnd:

    def test_full_session(self, pipeline, recorder):
        warm_focus(pipeline)
        assert pipeline.focused is True

        # FIST for one frame while idle starts the session
        assert pipeline.on_hand_frame(FIST, 0) is GestureLabel.FIST
        assert pipeline.session == SessionState.active()

        # 90 seconds: debounced focus true for 60, false for 30
        for second in range(90):
            face = focused_face() if second < 59 else unfocused_face()
            pipeline.on_face_frame(face, second * 1000 + 500)
            assert pipeline.poll((second + 1) * 1000) == 1

        assert pipeline.metrics.elapsed_seconds == 90
        assert pipeline.metrics.focused_seconds == 60
        assert pipeline.metrics.distraction_count == 1

        # OPEN_PALM for one frame pauses immediately
        pipeline.on_hand_frame(PALM, 90_500)
        assert pipeline.session.paused
        assert pipeline.poll(95_000) == 0

        # Five swipe-qualifying palm samples resume
        for i, frame in enumerate(swipe_frames("right")):
            pipeline.on_hand_frame(frame, 95_000 + i * 33)
        assert pipeline.session == SessionState.active()
        assert recorder.of(Events.SWIPE_RESUME) == [{"direction": SwipeDirection.RIGHT}]

        # PEACE for one frame ends and archives
        pipeline.on_hand_frame(PEACE, 95_500)
        assert pipeline.session.is_ended
        record = pipeline.history.records[0]
        assert record.duration_seconds == 90
        assert record.focused_seconds == 60
        assert record.distractions == 1
        assert [kw["record"] for kw in recorder.of(Events.SESSION_ARCHIVED)] == [record]

    def test_frames_dropped_while_ended(self, pipeline):
        pipeline.on_hand_frame(FIST, 0)
        pipeline.on_hand_frame(PEACE, 1000)
        assert pipeline.on_face_frame(focused_face(), 2000) is None
        assert pipeline.on_hand_frame(FIST, 2000) is None
        assert pipeline.on_hand_frame(NEUTRAL, 4000) is GestureLabel.NONE
        assert pipeline.session.is_idle

    def test_restart_cooldown_after_end(self, pipeline):
        pipeline.on_hand_frame(FIST, 0)
        pipeline.on_hand_frame(PEACE, 1000)
        pipeline.on_hand_frame(FIST, 5999)
        assert pipeline.session.is_idle
        pipeline.on_hand_frame(FIST, 6000)
        assert pipeline.session.is_active


class TestGestures:

    def test_gesture_changed_events(self, pipeline, recorder):
        pipeline.start_session(0)
        for i in range(3):
            pipeline.on_hand_frame(FIST, i * 33)
        pipeline.on_hand_frame(None, 100)
        pipeline.on_hand_frame(NEUTRAL, 133)
        changes = [(kw["label"], kw["hold_frames"]) for kw in recorder.of(Events.GESTURE_CHANGED)]
        assert changes == [
            (GestureLabel.FIST, 0), (GestureLabel.FIST, 1), (GestureLabel.FIST, 2),
            (GestureLabel.NONE, 0),
        ]

    def test_hold_trigger_is_published(self, pipeline, recorder):
        pipeline.start_session(0)
        for i in range(30):
            pipeline.on_hand_frame(FIST, i * 33)
        triggered = recorder.of(Events.GESTURE_TRIGGERED)
        assert triggered == [{"label": GestureLabel.FIST}]
        assert pipeline.session == SessionState.active()

    def test_hold_peace_ends_without_instant_gestures(self, clock, bus):
        pipeline = build_pipeline(
            {"recognition": {"instant_gestures": []}, "focus": {"jitter": False}},
            clock=clock, event_bus=bus,
        )
        pipeline.start_session(0)
        for i in range(22):
            pipeline.on_hand_frame(PEACE, i * 33)
        assert pipeline.session.is_active
        pipeline.on_hand_frame(PEACE, 22 * 33)
        assert pipeline.session.is_ended

    def test_palm_while_idle_does_nothing(self, pipeline):
        pipeline.on_hand_frame(PALM, 0)
        assert pipeline.session.is_idle

    def test_palm_absence_auto_resume(self, pipeline):
        pipeline.start_session(0)
        pipeline.on_hand_frame(PALM, 0)
        for i in range(179):
            pipeline.on_hand_frame(None, 33 * (i + 1))
        assert pipeline.session.paused
        pipeline.on_hand_frame(None, 33 * 180)
        assert not pipeline.session.paused

    def test_stationary_palm_keeps_pause(self, pipeline):
        pipeline.start_session(0)
        for i in range(20):
            pipeline.on_hand_frame(PALM, i * 33)
        assert pipeline.session.paused


class TestFocusEvents:

    def test_focus_changed_per_frame(self, pipeline, recorder):
        warm_focus(pipeline, frames=2)
        samples = [kw["sample"] for kw in recorder.of(Events.FOCUS_CHANGED)]
        assert len(samples) == 2
        assert samples[1].debounced is True

    def test_distraction_events(self, pipeline, recorder):
        warm_focus(pipeline)
        pipeline.start_session(0)
        for t, face in ((100, unfocused_face()), (200, unfocused_face()),
                        (300, focused_face()), (400, focused_face()),
                        (500, unfocused_face()), (600, unfocused_face())):
            pipeline.on_face_frame(face, t)
        events = recorder.of(Events.DISTRACTION)
        assert [kw["counted"] for kw in events] == [True, False]
        assert pipeline.metrics.distraction_count == 1

    def test_no_distraction_while_idle(self, pipeline, recorder):
        warm_focus(pipeline)
        pipeline.on_face_frame(unfocused_face(), 100)
        pipeline.on_face_frame(unfocused_face(), 200)
        assert recorder.of(Events.DISTRACTION) == []


class TestManualCommands:

    def test_start_toggle_end(self, pipeline):
        assert pipeline.start_session(0) is True
        assert pipeline.start_session(10) is True       # already active
        assert pipeline.toggle_pause(20) is True
        assert pipeline.toggle_pause(30) is False
        record = pipeline.end_session(40)
        assert record is not None
        assert pipeline.end_session(50) is None

    def test_manual_pause_resumes_without_palm(self, pipeline):
        pipeline.start_session(0)
        pipeline.toggle_pause(10)
        for i in range(179):
            pipeline.on_hand_frame(NEUTRAL, 20 + i * 33)
        assert pipeline.session.paused
        pipeline.on_hand_frame(NEUTRAL, 20 + 179 * 33)
        assert pipeline.session == SessionState.active()

    def test_resume_camera(self, pipeline):
        pipeline.start_session(0)
        pipeline.end_session(100)
        assert pipeline.resume_camera(200) is True
        assert pipeline.session.is_idle
        assert pipeline.start_session(300) is False     # restart cooldown

    def test_state_changes_published(self, pipeline, recorder):
        pipeline.start_session(0)
        pipeline.toggle_pause(10)
        states = [kw["state"] for kw in recorder.of(Events.SESSION_STATE_CHANGED)]
        assert states == [SessionState.active(), SessionState.active(paused=True)]


class TestTimersAndMeter:

    def test_ticks_only_while_running(self, pipeline, clock):
        pipeline.start_session(0)
        clock.set(2500)
        assert pipeline.poll() == 2
        pipeline.toggle_pause(2500)
        clock.set(10_000)
        assert pipeline.poll() == 0
        pipeline.toggle_pause(10_000)
        clock.set(10_999)
        assert pipeline.poll() == 0
        clock.set(11_000)
        assert pipeline.poll() == 1
        assert pipeline.metrics.elapsed_seconds == 3

    def test_meter_grows_and_collapses(self, pipeline):
        warm_focus(pipeline)
        pipeline.start_session(0)
        pipeline.poll(0)
        pipeline.poll(1000)
        assert pipeline.meter.level == pytest.approx(5.0)

        pipeline.on_face_frame(unfocused_face(), 1050)
        pipeline.on_face_frame(unfocused_face(), 1060)
        pipeline.poll(1100)
        assert pipeline.meter.level == 0.0

    def test_manual_resume_fills_meter(self, pipeline):
        pipeline.start_session(0)
        pipeline.toggle_pause(10)
        pipeline.toggle_pause(20)
        assert pipeline.meter.level == 100.0


class TestAmbient:

    def test_performance_stages(self, pipeline):
        pipeline.on_face_frame(focused_face(), 0)
        pipeline.on_hand_frame(None, 0)
        pipeline.poll(0)
        perf = pipeline.performance
        assert perf.get_call_count("face") == 1
        assert perf.get_call_count("hand") == 1
        assert perf.get_call_count("tick") == 1

    def test_heatmap_fed_when_enabled(self, clock):
        pipeline = build_pipeline(
            {"attention": {"heatmap": {"enabled": True}}, "focus": {"jitter": False}},
            clock=clock,
        )
        pipeline.on_face_frame(focused_face(), 0)
        assert pipeline.heatmap.peak > 0

    def test_failing_listener_does_not_break_frames(self, pipeline, bus):
        def broken(**_):
            raise RuntimeError("listener failure")

        bus.subscribe(Events.FOCUS_CHANGED, broken)
        assert pipeline.on_face_frame(focused_face(), 0) is not None
