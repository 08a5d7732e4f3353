import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from mindcoach.config import OrchestratorSettings
from mindcoach.models import UserProfile
from mindcoach.orchestrator import RecordingOrchestrator
from mindcoach.simulation import ScriptedCapture, ScriptTranscriber
from fakes import FakeClock, FakeInsightService, FakeSynthesizer


@pytest.fixture
def settings():
    return OrchestratorSettings(
        segment_duration=0.02,
        coaching_interval=3600,
        voice_feedback_cooldown=30,
        rotation_settle_delay=0.0,
    )


@pytest.fixture
def profile():
    return UserProfile(name="Sam", goals=["Sleep better"], challenges=["Anxiety"], voice_tone="calm")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_orchestrator(settings, clock):
    """Build an orchestrator over scripted lines with in-memory services."""

    def factory(lines=(), **overrides):
        capture = overrides.pop("capture", None) or ScriptedCapture(lines)
        return RecordingOrchestrator(
            capture=capture,
            transcriber=overrides.pop("transcriber", None) or ScriptTranscriber(),
            insight_service=overrides.pop("insight_service", None) or FakeInsightService(),
            synthesizer=overrides.pop("synthesizer", None) or FakeSynthesizer(),
            settings=overrides.pop("settings", settings),
            player=overrides.pop("player", None),
            clock=clock,
            **overrides,
        )

    return factory
