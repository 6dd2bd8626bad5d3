"""
Tests for the Session State Machine
===================================
"""

import pytest
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from focuszone.core import scheduler
from focuszone.core.session import (
    CoreState, SessionRules, SessionStateMachine, reduce,
    Advance, Start, End, TogglePause, ResumeCamera,
    HandObserved, SwipeObserved, FocusObserved, Tick,
)
from focuszone.core.types import CooldownKind, GestureLabel, SessionPhase, SessionState

PALM = GestureLabel.OPEN_PALM


def run(state, *events, rules=None):
    for event in events:
        state = reduce(state, event, rules)
    return state


@pytest.fixture
def active():
    return run(CoreState(), Start(0))


@pytest.fixture
def paused(active):
    return run(active, HandObserved(10, PALM))


class TestStartAndEnd:

    def test_start_from_idle(self):
        state = run(CoreState(), Start(1000))
        assert state.session == SessionState.active()
        assert state.metrics.started_at_ms == 1000
        assert state.metrics.elapsed_seconds == 0

    def test_start_while_active_is_noop(self, active):
        assert reduce(active, Start(500)) is active

    def test_end_while_idle_is_noop(self):
        state = CoreState()
        assert reduce(state, End(0)) is state

    def test_end_archives_record(self, active):
        state = run(active, FocusObserved(0, True), Tick(1000), Tick(2000), End(2500))
        assert state.session.phase is SessionPhase.ENDED
        assert state.last_ended_at_ms == 2500
        assert state.last_record.duration_seconds == 2
        assert state.last_record.focused_seconds == 2
        assert state.last_record.focus_percentage == 100.0
        assert state.metrics.elapsed_seconds == 0

    def test_end_while_paused(self, paused):
        state = reduce(paused, End(100))
        assert state.session.is_ended
        assert scheduler.find(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME) is None

    def test_restart_blocked_for_five_seconds(self, active):
        state = run(active, End(10_000), Advance(13_000))
        assert state.session.is_idle
        assert run(state, Start(14_999)).session.is_idle
        assert run(state, Start(15_000)).session.is_active

    def test_ended_lasts_camera_pause(self, active):
        ended = reduce(active, End(10_000))
        assert reduce(ended, Advance(12_999)).session.is_ended
        assert reduce(ended, Advance(13_000)).session.is_idle

    def test_start_ignored_while_ended(self, active):
        ended = reduce(active, End(0))
        assert reduce(ended, Start(1000)).session.is_ended

    def test_resume_camera(self, active):
        ended = reduce(active, End(0))
        state = reduce(ended, ResumeCamera(500))
        assert state.session.is_idle
        # Start cooldown still applies
        assert reduce(state, Start(1000)).session.is_idle

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            reduce(CoreState(), object())


class TestPalmPause:

    def test_open_palm_pauses(self, paused):
        assert paused.session == SessionState.active(paused=True, holding_pause_gesture=True)
        window = scheduler.find(paused.cooldowns, CooldownKind.PALM_ABSENCE_RESUME)
        assert window.expires_at == paused.hand_frames + 180

    def test_palm_ignored_when_idle(self):
        state = reduce(CoreState(), HandObserved(0, PALM))
        assert state.session.is_idle
        assert state.hand_frames == 1

    def test_release_clears_holding(self, paused):
        state = reduce(paused, HandObserved(20, GestureLabel.NONE, present=False))
        assert state.session.paused
        assert not state.session.holding_pause_gesture

    def test_auto_resume_after_180_absent_frames(self, paused):
        state = paused
        for i in range(179):
            state = reduce(state, HandObserved(i, GestureLabel.NONE, present=False))
        assert state.session.paused
        state = reduce(state, HandObserved(180, GestureLabel.FIST))
        assert not state.session.paused
        assert scheduler.find(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME) is None

    def test_palm_reappearing_restarts_absence_count(self, paused):
        state = paused
        for i in range(100):
            state = reduce(state, HandObserved(i, GestureLabel.NONE, present=False))
        state = reduce(state, HandObserved(100, PALM))
        for i in range(179):
            state = reduce(state, HandObserved(i, GestureLabel.NONE, present=False))
        assert state.session.paused
        state = reduce(state, HandObserved(999, GestureLabel.NONE, present=False))
        assert not state.session.paused

    def test_swipe_resumes(self, paused):
        state = reduce(paused, SwipeObserved(50))
        assert state.session == SessionState.active()

    def test_swipe_ignored_when_not_paused(self, active):
        assert reduce(active, SwipeObserved(0)) is active

    def test_hold_to_pause_mode(self, active):
        rules = SessionRules(pause_toggle=False)
        state = run(active, HandObserved(0, PALM), HandObserved(1, PALM), rules=rules)
        assert state.session.paused
        state = reduce(state, HandObserved(2, GestureLabel.NONE), rules)
        assert not state.session.paused

    def test_manual_pause_auto_resumes_after_180_frames(self, active):
        state = reduce(active, TogglePause(0))
        window = scheduler.find(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME)
        assert window.expires_at == state.hand_frames + 180
        for i in range(179):
            state = reduce(state, HandObserved(i, GestureLabel.NONE, present=False))
        assert state.session.paused
        state = reduce(state, HandObserved(180, GestureLabel.FIST))
        assert state.session == SessionState.active()

    def test_palm_during_manual_pause_restarts_count(self, active):
        state = reduce(active, TogglePause(0))
        for i in range(100):
            state = reduce(state, HandObserved(i, GestureLabel.NONE))
        state = reduce(state, HandObserved(100, PALM))
        for i in range(179):
            state = reduce(state, HandObserved(i, GestureLabel.NONE))
        assert state.session.paused
        state = reduce(state, HandObserved(999, GestureLabel.NONE))
        assert not state.session.paused


class TestManualPause:

    def test_toggle(self, active):
        state = reduce(active, TogglePause(0))
        assert state.session.paused
        state = reduce(state, TogglePause(1))
        assert not state.session.paused

    def test_manual_resume_clears_gesture_pause(self, paused):
        state = reduce(paused, TogglePause(0))
        assert state.session == SessionState.active()
        assert scheduler.find(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME) is None

    def test_toggle_ignored_when_idle(self):
        state = CoreState()
        assert reduce(state, TogglePause(0)) is state


class TestTimers:

    def test_tick_counts_focused_time(self, active):
        state = run(active, FocusObserved(0, True), Tick(1000), FocusObserved(1500, False), Tick(2000))
        assert state.metrics.elapsed_seconds == 2
        assert state.metrics.focused_seconds == 1

    def test_tick_frozen_while_paused(self, paused):
        state = run(paused, Tick(1000), Tick(2000))
        assert state.metrics.elapsed_seconds == 0

    def test_tick_ignored_when_idle(self):
        state = CoreState()
        assert reduce(state, Tick(1000)) is state

    def test_focused_never_exceeds_elapsed(self, active):
        state = run(active, FocusObserved(0, True), *[Tick(i * 1000) for i in range(1, 30)])
        assert state.metrics.focused_seconds <= state.metrics.elapsed_seconds


class TestDistraction:

    def test_counted_on_true_to_false(self, active):
        state = run(active, FocusObserved(0, True), FocusObserved(1000, False))
        assert state.metrics.distraction_count == 1
        assert state.metrics.last_distraction_at_ms == 1000

    def test_cooldown_suppresses_repeat(self, active):
        state = run(active,
                    FocusObserved(0, True), FocusObserved(1000, False),
                    FocusObserved(2000, True), FocusObserved(3000, False))
        assert state.metrics.distraction_count == 1
        state = run(state, FocusObserved(6000, True), FocusObserved(6100, False))
        assert state.metrics.distraction_count == 2

    def test_not_counted_while_paused(self, active):
        state = run(active, FocusObserved(0, True), TogglePause(10), FocusObserved(1000, False))
        assert state.metrics.distraction_count == 0

    def test_not_counted_when_idle(self):
        state = run(CoreState(), FocusObserved(0, True), FocusObserved(1000, False))
        assert state.metrics.distraction_count == 0
        assert state.focused is False

    def test_initial_last_distraction_is_none(self, active):
        assert active.metrics.last_distraction_at_ms is None

    def test_start_resets_distraction_cooldown(self, active):
        state = run(active, FocusObserved(0, True), FocusObserved(100, False),
                    End(200), Start(6000), FocusObserved(6100, True), FocusObserved(6200, False))
        assert state.metrics.distraction_count == 1


class TestSessionStateMachine:

    def test_dispatch_returns_previous_and_current(self):
        machine = SessionStateMachine()
        previous, current = machine.dispatch(Start(0))
        assert previous.session.is_idle
        assert current.session.is_active
        assert machine.state is current

    def test_rules_from_dict(self):
        rules = SessionRules.from_dict({"palm_absence_frames": 90, "pause_toggle": False})
        assert rules.palm_absence_frames == 90
        assert rules.pause_toggle is False
        assert rules.distraction_cooldown_ms == 5000

    def test_state_is_immutable(self, active):
        with pytest.raises(Exception):
            active.focused = True
        assert replace(active, focused=True).focused is True

    def test_reset(self):
        machine = SessionStateMachine()
        machine.dispatch(Start(0))
        machine.reset()
        assert machine.state.session.is_idle
