"""
Tests for the Simulation Mode
=============================
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from focuszone.core.events import Events
from focuszone.core.types import SessionState
from focuszone.modules.utils.config import Config
from main import FocusZoneApp


@pytest.fixture
def config():
    Config.reset()
    config = Config().load(str(Path(__file__).parent.parent / "config" / "config.yaml"))
    yield config
    Config.reset()


class TestSimulation:

    def test_scripted_session(self, config):
        app = FocusZoneApp(config, mode="simulate")
        assert app.start() is True

        pipeline = app._pipeline
        assert pipeline.session.is_idle
        records = pipeline.history.records
        assert len(records) == 1
        assert records[0].distractions == 1
        assert 20 <= records[0].duration_seconds <= 22
        assert 0 < records[0].focused_seconds < records[0].duration_seconds

    def test_swipe_resumes_for_good(self, config):
        app = FocusZoneApp(config, mode="simulate")
        states = []

        def record(state=None, **_):
            if not states or states[-1] != state:
                states.append(state)

        app._bus.subscribe(Events.SESSION_STATE_CHANGED, record)
        app.start()

        assert states == [
            SessionState.active(),
            SessionState.active(paused=True, holding_pause_gesture=True),
            SessionState.active(),
            SessionState.ended(),
            SessionState.idle(),
        ]
