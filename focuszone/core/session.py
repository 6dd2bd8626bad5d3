"""
Session state machine as an explicit state reducer.

All session state lives in one immutable ``CoreState`` value. Every input,
whether a hand frame, a focus update, a timer tick or a UI command, becomes
one event, and ``reduce(state, event)`` returns the next state in a single
atomic step. Cooldowns are expiry stamps inside the state, compared against
the event's timestamp, so the whole machine is deterministic.

    IDLE --Start--> ACTIVE(paused=False)      (blocked by START_AFTER_END)
    ACTIVE --OPEN_PALM--> ACTIVE(paused, holding)
    ACTIVE(paused) --Swipe / palm absent 180 frames--> ACTIVE
    ACTIVE --End--> ENDED --CAMERA_PAUSE expires--> IDLE

Illegal requests (ending while idle, starting twice) are logged no-ops.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from focuszone.core import scheduler
from focuszone.core.types import (
    CooldownKind, CooldownWindow, GestureLabel,
    SessionMetrics, SessionRecord, SessionState,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class SessionRules:
    """Timing rules for the session state machine."""
    distraction_cooldown_ms: int = 5000
    start_after_end_cooldown_ms: int = 5000
    palm_absence_frames: int = 180
    camera_pause_ms: int = 3000
    pause_toggle: bool = True   # False = paused only while the palm is held

    @classmethod
    def from_dict(cls, config: dict) -> "SessionRules":
        """Create rules from the ``session`` config section."""
        config = config or {}
        return cls(
            distraction_cooldown_ms=int(config.get("distraction_cooldown_ms", 5000)),
            start_after_end_cooldown_ms=int(config.get("start_after_end_cooldown_ms", 5000)),
            palm_absence_frames=int(config.get("palm_absence_frames", 180)),
            camera_pause_ms=int(config.get("camera_pause_ms", 3000)),
            pause_toggle=bool(config.get("pause_toggle", True)),
        )


# =============================================================================
# State
# =============================================================================

@dataclass(frozen=True)
class CoreState:
    """Everything the session layer knows, in one value."""
    session: SessionState = field(default_factory=SessionState.idle)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    focused: bool = False                      # debounced focus boolean
    cooldowns: Tuple[CooldownWindow, ...] = ()
    last_ended_at_ms: Optional[int] = None
    hand_frames: int = 0                       # hand frames seen, clock for palm absence
    last_record: Optional[SessionRecord] = None


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class Advance:
    """Housekeeping only: expire windows at ``at_ms``."""
    at_ms: int


@dataclass(frozen=True)
class Start:
    at_ms: int
    source: str = "manual"


@dataclass(frozen=True)
class End:
    at_ms: int
    source: str = "manual"


@dataclass(frozen=True)
class TogglePause:
    at_ms: int


@dataclass(frozen=True)
class ResumeCamera:
    at_ms: int


@dataclass(frozen=True)
class HandObserved:
    at_ms: int
    label: GestureLabel = GestureLabel.NONE
    present: bool = True


@dataclass(frozen=True)
class SwipeObserved:
    at_ms: int


@dataclass(frozen=True)
class FocusObserved:
    at_ms: int
    focused: bool


@dataclass(frozen=True)
class Tick:
    at_ms: int


# =============================================================================
# Reducer
# =============================================================================

def _expire(state: CoreState, now: int) -> CoreState:
    cooldowns = scheduler.prune(state.cooldowns, now)
    session = state.session
    if session.is_ended and not scheduler.is_open(cooldowns, CooldownKind.CAMERA_PAUSE, now):
        logger.info("Camera pause over — session idle")
        session = SessionState.idle()
    if cooldowns == state.cooldowns and session is state.session:
        return state
    return replace(state, cooldowns=cooldowns, session=session)


def _resume(state: CoreState, reason: str) -> CoreState:
    logger.info("Session resumed (%s)", reason)
    return replace(
        state,
        session=SessionState.active(paused=False, holding_pause_gesture=False),
        cooldowns=scheduler.clear(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME),
    )


def _on_advance(state: CoreState, event: Advance, rules: SessionRules) -> CoreState:
    return state


def _on_start(state: CoreState, event: Start, rules: SessionRules) -> CoreState:
    if not state.session.is_idle:
        logger.debug("Start (%s) ignored — session is %s", event.source, state.session)
        return state

    if scheduler.is_open(state.cooldowns, CooldownKind.START_AFTER_END, event.at_ms):
        wait = scheduler.remaining(state.cooldowns, CooldownKind.START_AFTER_END, event.at_ms)
        logger.debug("Start (%s) ignored — cooldown after end, %d ms remaining",
                     event.source, wait)
        return state

    logger.info("Session started (%s)", event.source)
    cooldowns = scheduler.clear(state.cooldowns, CooldownKind.DISTRACTION_REPEAT)
    cooldowns = scheduler.clear(cooldowns, CooldownKind.PALM_ABSENCE_RESUME)
    return replace(
        state,
        session=SessionState.active(),
        metrics=SessionMetrics(started_at_ms=event.at_ms),
        cooldowns=cooldowns,
    )


def _on_end(state: CoreState, event: End, rules: SessionRules) -> CoreState:
    if not state.session.is_active:
        logger.debug("End (%s) ignored — session is %s", event.source, state.session)
        return state

    record = SessionRecord.from_metrics(state.metrics, event.at_ms)
    logger.info("Session ended (%s): %ds, %ds focused, %d distractions",
                event.source, record.duration_seconds, record.focused_seconds,
                record.distractions)

    cooldowns = scheduler.clear(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME)
    cooldowns = scheduler.clear(cooldowns, CooldownKind.DISTRACTION_REPEAT)
    cooldowns = scheduler.arm(cooldowns, CooldownKind.START_AFTER_END,
                              event.at_ms + rules.start_after_end_cooldown_ms)
    cooldowns = scheduler.arm(cooldowns, CooldownKind.CAMERA_PAUSE,
                              event.at_ms + rules.camera_pause_ms)
    return replace(
        state,
        session=SessionState.ended(),
        metrics=SessionMetrics(),
        cooldowns=cooldowns,
        last_ended_at_ms=event.at_ms,
        last_record=record,
    )


def _on_toggle_pause(state: CoreState, event: TogglePause, rules: SessionRules) -> CoreState:
    if not state.session.is_active:
        logger.debug("Toggle pause ignored — session is %s", state.session)
        return state
    if state.session.paused:
        return _resume(state, "manual")
    logger.info("Session paused (manual)")
    return replace(
        state,
        session=SessionState.active(
            paused=True, holding_pause_gesture=state.session.holding_pause_gesture),
        cooldowns=scheduler.arm(state.cooldowns, CooldownKind.PALM_ABSENCE_RESUME,
                                state.hand_frames + rules.palm_absence_frames),
    )


def _on_resume_camera(state: CoreState, event: ResumeCamera, rules: SessionRules) -> CoreState:
    if not state.session.is_ended:
        return state
    logger.info("Camera resumed early — session idle")
    return replace(
        state,
        session=SessionState.idle(),
        cooldowns=scheduler.clear(state.cooldowns, CooldownKind.CAMERA_PAUSE),
    )


def _on_hand(state: CoreState, event: HandObserved, rules: SessionRules) -> CoreState:
    frames = state.hand_frames + 1
    state = replace(state, hand_frames=frames)
    session = state.session
    if not session.is_active:
        return state

    palm = event.present and event.label is GestureLabel.OPEN_PALM
    cooldowns = state.cooldowns

    if palm:
        if not session.paused:
            logger.info("Session paused (open palm)")
            return replace(
                state,
                session=SessionState.active(paused=True, holding_pause_gesture=True),
                cooldowns=scheduler.arm(cooldowns, CooldownKind.PALM_ABSENCE_RESUME,
                                        frames + rules.palm_absence_frames),
            )
        if scheduler.find(cooldowns, CooldownKind.PALM_ABSENCE_RESUME) is not None:
            # Palm still visible: absence must be consecutive, restart the count
            return replace(state, cooldowns=scheduler.arm(
                cooldowns, CooldownKind.PALM_ABSENCE_RESUME, frames + rules.palm_absence_frames))
        return state

    if not session.paused:
        if session.holding_pause_gesture:
            return replace(state, session=SessionState.active())
        return state

    if not rules.pause_toggle and session.holding_pause_gesture:
        return _resume(state, "palm released")

    if not scheduler.is_open(cooldowns, CooldownKind.PALM_ABSENCE_RESUME, frames) \
            and scheduler.find(cooldowns, CooldownKind.PALM_ABSENCE_RESUME) is not None:
        return _resume(state, "palm absent %d frames" % rules.palm_absence_frames)

    if session.holding_pause_gesture:
        return replace(state, session=SessionState.active(paused=True))
    return state


def _on_swipe(state: CoreState, event: SwipeObserved, rules: SessionRules) -> CoreState:
    if not (state.session.is_active and state.session.paused):
        return state
    return _resume(state, "swipe")


def _on_focus(state: CoreState, event: FocusObserved, rules: SessionRules) -> CoreState:
    focused = bool(event.focused)
    metrics = state.metrics
    cooldowns = state.cooldowns

    # Distraction is evaluated against the previous debounced value first
    if state.focused and not focused and state.session.is_running:
        if scheduler.is_open(cooldowns, CooldownKind.DISTRACTION_REPEAT, event.at_ms):
            logger.debug("Looked away — not counted, cooldown %d ms remaining",
                         scheduler.remaining(cooldowns, CooldownKind.DISTRACTION_REPEAT, event.at_ms))
        else:
            metrics = replace(
                metrics,
                distraction_count=metrics.distraction_count + 1,
                last_distraction_at_ms=event.at_ms,
            )
            cooldowns = scheduler.arm(cooldowns, CooldownKind.DISTRACTION_REPEAT,
                                      event.at_ms + rules.distraction_cooldown_ms)
            logger.info("Looked away — distraction #%d", metrics.distraction_count)

    if focused == state.focused and metrics is state.metrics:
        return state
    return replace(state, focused=focused, metrics=metrics, cooldowns=cooldowns)


def _on_tick(state: CoreState, event: Tick, rules: SessionRules) -> CoreState:
    if not state.session.is_running:
        return state
    metrics = state.metrics
    return replace(state, metrics=replace(
        metrics,
        elapsed_seconds=metrics.elapsed_seconds + 1,
        focused_seconds=metrics.focused_seconds + (1 if state.focused else 0),
    ))


_HANDLERS = {
    Advance: _on_advance,
    Start: _on_start,
    End: _on_end,
    TogglePause: _on_toggle_pause,
    ResumeCamera: _on_resume_camera,
    HandObserved: _on_hand,
    SwipeObserved: _on_swipe,
    FocusObserved: _on_focus,
    Tick: _on_tick,
}


def reduce(state: CoreState, event, rules: SessionRules = None) -> CoreState:
    """Apply one event and return the next state. ``state`` is never mutated."""
    rules = rules or SessionRules()
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError("Unknown session event: %r" % (event,))
    state = _expire(state, event.at_ms)
    return handler(state, event, rules)


# =============================================================================
# Stateful wrapper
# =============================================================================

class SessionStateMachine:
    """Holds the current CoreState and applies events to it."""

    def __init__(self, rules: SessionRules = None, initial: CoreState = None):
        self._rules = rules or SessionRules()
        self._state = initial or CoreState()

    @property
    def rules(self) -> SessionRules:
        return self._rules

    @property
    def state(self) -> CoreState:
        return self._state

    def dispatch(self, event) -> Tuple[CoreState, CoreState]:
        """Apply ``event``; returns ``(previous, current)`` states."""
        previous = self._state
        self._state = reduce(previous, event, self._rules)
        return previous, self._state

    def reset(self):
        self._state = CoreState()
