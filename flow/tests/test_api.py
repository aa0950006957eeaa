"""
Tests for the ambient control API.
"""

import pytest
from fastapi.testclient import TestClient

from flow.api.main import app
from flow.audio.backends import NullAudioBackend
from flow.audio.engine import ClipGenerator
from flow.audio.mixer import AmbientMixer
from flow.audio.synthesizers import BinauralSynthesizer


class RecordingScheduler:
    """Records restore delays without firing them."""

    def __init__(self):
        self.calls = []

    def schedule(self, delay, callback):
        self.calls.append(delay)


@pytest.fixture
def backend():
    return NullAudioBackend()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def client(backend, scheduler):
    """Test client with a short-clip mixer installed before startup."""
    app.state.mixer = AmbientMixer(
        backend=backend,
        generator=ClipGenerator(synthesizer=BinauralSynthesizer(), loop_seconds=0.5, noise_seed=3),
        scheduler=scheduler,
        initial_calm_volume=0.6
    )
    with TestClient(app) as test_client:
        yield test_client
    app.state.mixer = None


class TestHealth:
    """Test health endpoint."""

    def test_health(self, client):
        """Test that audio status is reported."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["audio"] == "ok"


class TestAmbientRoutes:
    """Test mixer control endpoints."""

    def test_clips_prepared_on_startup(self, client, backend):
        """Test that the lifespan generates both layers."""
        assert set(backend.clips) == {"calm", "stress"}

        state = client.get("/api/v1/ambient/state").json()
        assert state["is_playing"] is False
        assert state["layers"]["calm"]["duration"] == pytest.approx(0.5)

    def test_start_and_stop(self, client, backend):
        """Test playback toggling."""
        response = client.post("/api/v1/ambient/start")

        assert response.status_code == 200
        body = response.json()
        assert body["result"] == "ok"
        assert body["state"]["is_playing"] is True
        assert body["state"]["calm_volume"] == pytest.approx(0.6)

        body = client.post("/api/v1/ambient/stop").json()
        assert body["state"]["is_playing"] is False
        assert backend.playing == {"calm": False, "stress": False}

    def test_score(self, client):
        """Test score updates."""
        client.post("/api/v1/ambient/start")
        state = client.post("/api/v1/ambient/score", json={"score": 100}).json()

        assert state["calm_volume"] == pytest.approx(0.4)
        assert state["stress_volume"] == pytest.approx(0.7)

    def test_score_validation(self, client):
        """Test that a malformed body is rejected."""
        response = client.post("/api/v1/ambient/score", json={"score": "high"})

        assert response.status_code == 422

    def test_focus(self, client):
        """Test focus mode."""
        client.post("/api/v1/ambient/start")
        client.post("/api/v1/ambient/score", json={"score": 80})
        state = client.post("/api/v1/ambient/focus", json={"enabled": True}).json()

        assert state["focus_mode_active"] is True
        assert state["calm_volume"] == pytest.approx(0.8)
        assert state["stress_volume"] == 0.0

    def test_mute(self, client, backend):
        """Test mute toggling."""
        client.post("/api/v1/ambient/start")
        state = client.post("/api/v1/ambient/mute", json={"muted": True}).json()

        assert state["is_muted"] is True
        assert backend.gains == {"calm": 0.0, "stress": 0.0}

    def test_chimes(self, client, scheduler):
        """Test chime triggers schedule their restores."""
        client.post("/api/v1/ambient/start")

        state = client.post("/api/v1/ambient/chime/event").json()
        assert state["calm_volume"] == pytest.approx(0.9)

        state = client.post("/api/v1/ambient/chime/completion").json()
        assert state["calm_volume"] == 1.0
        assert state["stress_volume"] == 0.0
        assert scheduler.calls == [pytest.approx(0.15), pytest.approx(0.5)]


def test_mixer_missing():
    """Test that routes report 503 without a mixer."""
    app.state.mixer = None
    client = TestClient(app)

    response = client.get("/api/v1/ambient/state")

    assert response.status_code == 503
