"""
Shared domain types for the FocusZone core.

Centralizes enums and immutable value objects used across modules so the
recognition, control and session layers agree on one vocabulary and no
module has to import another just for its types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Gesture Types
# =============================================================================

class GestureLabel(Enum):
    """Closed set of static hand gestures."""
    NONE = "none"
    FIST = "fist"
    OPEN_PALM = "open_palm"
    PEACE = "peace"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"

    @classmethod
    def from_string(cls, name: str) -> 'GestureLabel':
        """Convert a gesture name ("fist", "OPEN_PALM") to a label, safely."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.NONE

    @property
    def is_gesture(self) -> bool:
        return self is not GestureLabel.NONE


class SwipeDirection(Enum):
    """Horizontal swipe direction in image coordinates."""
    LEFT = "left"
    RIGHT = "right"


# =============================================================================
# Focus
# =============================================================================

@dataclass(frozen=True)
class FocusSample:
    """One face frame's attention readout.

    ``focused`` is the raw per-frame cue; ``debounced`` is the majority vote
    over the recent cues and is the value the session logic observes.
    """
    raw_score: int
    smoothed_score: int
    focused: bool
    debounced: bool = False
    direction: str = "away"
    face_present: bool = False


# =============================================================================
# Gesture Hold
# =============================================================================

@dataclass(frozen=True)
class GestureHoldState:
    current_gesture: GestureLabel = GestureLabel.NONE
    hold_frames: int = 0
    triggered: bool = False


# =============================================================================
# Session
# =============================================================================

class SessionPhase(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class SessionState:
    """Tagged session state.

    ``paused`` and ``holding_pause_gesture`` only carry meaning while the
    phase is ACTIVE; the constructors below keep them False otherwise.
    """
    phase: SessionPhase = SessionPhase.IDLE
    paused: bool = False
    holding_pause_gesture: bool = False

    @classmethod
    def idle(cls) -> 'SessionState':
        return cls(SessionPhase.IDLE)

    @classmethod
    def active(cls, paused: bool = False, holding_pause_gesture: bool = False) -> 'SessionState':
        return cls(SessionPhase.ACTIVE, paused, holding_pause_gesture)

    @classmethod
    def ended(cls) -> 'SessionState':
        return cls(SessionPhase.ENDED)

    @property
    def is_idle(self) -> bool:
        return self.phase is SessionPhase.IDLE

    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.phase is SessionPhase.ENDED

    @property
    def is_running(self) -> bool:
        """Active, unpaused and not holding the pause gesture."""
        return self.is_active and not self.paused and not self.holding_pause_gesture

    def __str__(self):
        if self.is_active:
            flags = []
            if self.paused:
                flags.append("paused")
            if self.holding_pause_gesture:
                flags.append("holding")
            return "active(%s)" % ",".join(flags) if flags else "active"
        return self.phase.value


@dataclass(frozen=True)
class SessionMetrics:
    elapsed_seconds: int = 0
    focused_seconds: int = 0
    distraction_count: int = 0
    last_distraction_at_ms: Optional[int] = None
    started_at_ms: Optional[int] = None

    @property
    def focus_percentage(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.focused_seconds / self.elapsed_seconds * 100.0


@dataclass(frozen=True)
class SessionRecord:
    """Archived summary of one ended session."""
    duration_seconds: int
    focused_seconds: int
    distractions: int
    focus_percentage: float
    ended_at_ms: int

    @classmethod
    def from_metrics(cls, metrics: SessionMetrics, ended_at_ms: int) -> 'SessionRecord':
        return cls(
            duration_seconds=metrics.elapsed_seconds,
            focused_seconds=metrics.focused_seconds,
            distractions=metrics.distraction_count,
            focus_percentage=metrics.focus_percentage,
            ended_at_ms=ended_at_ms,
        )

    def to_dict(self) -> dict:
        return {
            "duration": self.duration_seconds,
            "focused_time": self.focused_seconds,
            "distractions": self.distractions,
            "focus_percentage": round(self.focus_percentage, 1),
            "timestamp": self.ended_at_ms,
        }


# =============================================================================
# Cooldowns
# =============================================================================

class CooldownKind(Enum):
    START_AFTER_END = "start_after_end"
    DISTRACTION_REPEAT = "distraction_repeat"
    PALM_ABSENCE_RESUME = "palm_absence_resume"
    CAMERA_PAUSE = "camera_pause"


@dataclass(frozen=True)
class CooldownWindow:
    """Suppresses one kind of transition until ``expires_at``.

    ``expires_at`` is in milliseconds, except for PALM_ABSENCE_RESUME which
    counts hand frames.
    """
    kind: CooldownKind
    expires_at: int

    def is_open(self, now: int) -> bool:
        return now < self.expires_at

    def remaining(self, now: int) -> int:
        return max(0, self.expires_at - now)
