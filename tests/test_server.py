"""
API tests for the MindCoach backend, plus the event channel behind the
SSE stream.
Run with: pytest tests/test_server.py -v
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
import json
import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from mindcoach.events import EventChannel, format_sse
from mindcoach.models import Nudge, Priority, TranscriptEntry
from mindcoach.server import create_app
from mindcoach.simulation import ScriptedCapture

STRESSED = "I'm so stressed and overwhelmed, I feel like giving up"


@pytest.fixture
def make_client(make_orchestrator, profile):
    def factory(lines=(), **overrides):
        orchestrator = make_orchestrator(lines, **overrides)
        app = create_app(orchestrator, EventChannel(), profile)
        return TestClient(app), orchestrator

    return factory


class TestRecordingEndpoints:
    """Lifecycle over HTTP."""

    def test_health(self, make_client):
        client, _ = make_client()
        with client:
            response = client.get("/api/health")
            assert response.status_code == 200
            assert response.json() == {"status": "ok", "recording": False}

    def test_start_pause_resume_stop(self, make_client):
        client, orchestrator = make_client()
        with client:
            response = client.post("/api/recording/start")
            assert response.status_code == 200
            body = response.json()
            assert body["started"] is True
            assert body["status"]["is_recording"] is True
            assert orchestrator.initialized

            assert client.post("/api/recording/start").json()["started"] is False

            paused = client.post("/api/recording/pause").json()
            assert paused["is_paused"] is True
            resumed = client.post("/api/recording/resume").json()
            assert resumed["is_paused"] is False

            body = client.post("/api/recording/stop").json()
            assert body["stopped"] is True
            assert body["status"]["is_recording"] is False
            assert body["status"]["current_segment"] == "none"

            assert client.post("/api/recording/stop").json()["stopped"] is False

    def test_status(self, make_client):
        client, _ = make_client()
        with client:
            status = client.get("/api/recording/status").json()
            assert status == {
                "is_recording": False,
                "is_paused": False,
                "transcript_count": 0,
                "moment_count": 0,
                "current_segment": "none",
            }

    def test_permission_denied_is_403(self, make_client):
        client, _ = make_client(capture=ScriptedCapture(permission=False))
        with client:
            response = client.post("/api/recording/start")
            assert response.status_code == 403

    def test_capture_failure_is_503(self, make_client):
        client, orchestrator = make_client(capture=ScriptedCapture(fail_on_open=True))
        with client:
            response = client.post("/api/recording/start")
            assert response.status_code == 503
            assert not orchestrator.session.is_recording

    def test_shutdown_disposes_orchestrator(self, make_client):
        client, orchestrator = make_client()
        with client:
            client.post("/api/recording/start")
        assert not orchestrator.session.is_recording
        assert orchestrator.capture.released


class TestDataEndpoints:
    def test_session_data(self, make_client):
        client, _ = make_client([STRESSED])
        with client:
            client.post("/api/recording/start")
            client.post("/api/recording/stop")

            transcript = client.get("/api/transcript").json()
            assert [e["text"] for e in transcript] == [STRESSED]

            moments = client.get("/api/moments").json()
            assert moments[0]["type"] == "challenge"

            coaching = client.get("/api/coaching").json()
            assert coaching["nudges"][0]["trigger"] == "stressed"
            assert "real_time_feedback" in [t["source"] for t in coaching["tips"]]

            assert client.delete("/api/data").json() == {"cleared": True}
            assert client.get("/api/transcript").json() == []
            assert client.get("/api/moments").json() == []

    def test_update_profile(self, make_client):
        client, orchestrator = make_client()
        with client:
            response = client.put("/api/profile", json={"name": "Ana", "goals": ["Rest"]})
            assert response.status_code == 200
            assert response.json()["voice_tone"] == "calm"
            assert orchestrator.profile.name == "Ana"
            assert orchestrator.profile.goals == ["Rest"]

    def test_profile_validation(self, make_client):
        client, _ = make_client()
        with client:
            response = client.put("/api/profile", json={"goals": "not a list"})
            assert response.status_code == 422


class TestReflectEndpoint:
    """Typed reflections answered outside the recording loop."""

    def test_reply_with_nudges(self, make_client):
        client, orchestrator = make_client()
        with client:
            response = client.post("/api/reflect", json={"text": "I'm stressed about tomorrow"})
            assert response.status_code == 200
            body = response.json()
            assert body["text"] == "I'm stressed about tomorrow"
            assert body["reply"] == body["analysis"]["insights"]
            assert body["reply"]
            assert [n["trigger"] for n in body["nudges"]] == ["stressed"]
            assert body["audio_ref"] == "voice-1.mp3"
            assert orchestrator.get_transcript() == []

    def test_blank_text_is_422(self, make_client):
        client, _ = make_client()
        with client:
            response = client.post("/api/reflect", json={"text": "   "})
            assert response.status_code == 422

    def test_missing_or_empty_text_is_422(self, make_client):
        client, _ = make_client()
        with client:
            assert client.post("/api/reflect", json={}).status_code == 422
            assert client.post("/api/reflect", json={"text": ""}).status_code == 422


class TestEventChannel:
    """Fan-out used by the SSE endpoint."""

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self):
        channel = EventChannel()
        first, second = channel.subscribe(), channel.subscribe()

        channel.publish("nudge", {"message": "breathe"})

        for queue in (first, second):
            event = await asyncio.wait_for(queue.get(), 1)
            assert event["type"] == "nudge"
            assert event["data"] == {"message": "breathe"}

    @pytest.mark.asyncio
    async def test_full_queue_drops_oldest(self):
        channel = EventChannel(max_queue=2)
        queue = channel.subscribe()
        for i in range(3):
            channel.publish("tick", i)

        assert [queue.get_nowait()["data"] for _ in range(2)] == [1, 2]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        channel = EventChannel()
        queue = channel.subscribe()
        channel.unsubscribe(queue)
        channel.publish("tick", 1)
        assert queue.empty()
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_callbacks_publish_dicts(self):
        channel = EventChannel()
        queue = channel.subscribe()
        callbacks = channel.callbacks()

        entry = TranscriptEntry(timestamp=datetime(2024, 5, 1, 9), text="hello")
        await callbacks.emit("on_transcript_update", [entry])
        await callbacks.emit("on_nudge_triggered", Nudge("Breathe.", "stress", Priority.HIGH, "stressed"))

        transcript = queue.get_nowait()
        assert transcript["type"] == "transcript"
        assert transcript["data"][0]["text"] == "hello"
        nudge = queue.get_nowait()
        assert nudge["type"] == "nudge"
        assert nudge["data"]["trigger"] == "stressed"

    def test_format_sse(self):
        event = {"type": "moment", "data": {"id": "m1"}, "ts": 1.0}
        frame = format_sse(event)
        assert frame.startswith("event: moment\ndata: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame.split("data: ", 1)[1]) == event
