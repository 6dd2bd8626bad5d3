"""
Lightweight event bus carrying the core's downstream contract.

The pipeline publishes focus, gesture and session changes here; the
presentation layer (or tests) subscribe without the core knowing who
listens.

Usage:
    bus = EventBus()
    bus.subscribe(Events.GESTURE_TRIGGERED, on_trigger)
    bus.emit(Events.GESTURE_TRIGGERED, label=GestureLabel.THUMBS_UP)
"""

import time
import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Synchronous publish/subscribe bus with priority ordering.

    Dispatch happens inside the caller's frame callback; the core is
    single-threaded so no locking is done here.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._event_history = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        self._listeners[event_name].append((priority, callback))
        # Stable sort keeps registration order within one priority
        self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", repr(callback)), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        self._listeners[event_name] = [
            (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
        ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        A failing listener is logged and skipped; the remaining listeners
        still run.
        """
        if not self._enabled:
            return

        listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs.keys()),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for _priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", repr(callback)), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        if event_name:
            self._listeners.pop(event_name, None)
        else:
            self._listeners.clear()

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    @property
    def registered_events(self) -> list:
        """List all events with registered listeners."""
        return [name for name, cbs in self._listeners.items() if cbs]

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]

    def reset(self):
        """Drop listeners and history."""
        self._listeners.clear()
        self._event_history.clear()
        self._enabled = True


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names published by the pipeline."""

    # Attention
    FOCUS_CHANGED = "focus_changed"            # sample: FocusSample
    DISTRACTION = "distraction"                # counted: bool, at_ms: int

    # Gestures
    GESTURE_CHANGED = "gesture_changed"        # label: GestureLabel, hold_frames: int
    GESTURE_TRIGGERED = "gesture_triggered"    # label: GestureLabel
    SWIPE_RESUME = "swipe_resume"              # direction: SwipeDirection

    # Session lifecycle
    SESSION_STATE_CHANGED = "session_state_changed"  # state: SessionState, metrics: SessionMetrics
    SESSION_ARCHIVED = "session_archived"            # record: SessionRecord
