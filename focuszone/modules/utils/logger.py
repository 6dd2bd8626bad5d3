"""
Logging setup and the session event log.
"""

import os
import logging
import logging.handlers
import time


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console and optional rotating file logging."""
    # Clean console format — compact and readable
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-32s | %(message)s"
    date_format = "%H:%M:%S"

    level_value = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level_value)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class SessionLogger:
    """Event-bus listener that writes gesture and session events to the
    ``session_events`` logger and keeps a short in-memory trail."""

    def __init__(self, max_entries: int = 500):
        self.logger = logging.getLogger("session_events")
        self._entries = []
        self._max_entries = max_entries
        self._last_state = None

    def _record(self, kind: str, **fields):
        entry = {"timestamp": time.time(), "kind": kind}
        entry.update(fields)
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            self._entries.pop(0)
        return entry

    def log_trigger(self, label=None, **_):
        """Listener for ``gesture_triggered``."""
        name = getattr(label, "value", label)
        self._record("trigger", gesture=name)
        self.logger.info("Gesture: %-12s | triggered", name)

    def log_state(self, state=None, metrics=None, **_):
        """Listener for ``session_state_changed``. Timer-only updates go to DEBUG."""
        name = str(state)
        previous = self._last_state
        self._last_state = name
        if name == previous:
            if metrics is not None:
                self.logger.debug("Session: %-18s | %ds elapsed", name, metrics.elapsed_seconds)
            return
        self._record("state", state=name)
        if metrics is not None:
            self.logger.info("Session: %-18s | %ds elapsed, %ds focused, %d distractions",
                             state, metrics.elapsed_seconds, metrics.focused_seconds,
                             metrics.distraction_count)
        else:
            self.logger.info("Session: %s", state)

    def log_archive(self, record=None, **_):
        """Listener for ``session_archived``."""
        self._record("archive", **record.to_dict())
        self.logger.info("Archived: %ds | %.1f%% focused | %d distractions",
                         record.duration_seconds, record.focus_percentage, record.distractions)

    def log_distraction(self, counted=False, at_ms=None, **_):
        """Listener for ``distraction``."""
        self._record("distraction", counted=counted, at_ms=at_ms)
        self.logger.info("Distraction: %s", "counted" if counted else "within cooldown")

    def attach(self, bus):
        """Subscribe the listeners to an EventBus."""
        from focuszone.core.events import Events
        bus.subscribe(Events.GESTURE_TRIGGERED, self.log_trigger)
        bus.subscribe(Events.SESSION_STATE_CHANGED, self.log_state)
        bus.subscribe(Events.SESSION_ARCHIVED, self.log_archive)
        bus.subscribe(Events.DISTRACTION, self.log_distraction)
        return self

    def get_history(self, last_n=None):
        if last_n:
            return self._entries[-last_n:]
        return self._entries.copy()

    @property
    def total_entries(self):
        return len(self._entries)
