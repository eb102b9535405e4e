"""Tests for the WebSocket server endpoints."""

import numpy as np
import pytest

try:
    from fastapi.testclient import TestClient
    _HAS_TESTCLIENT = True
except ImportError:
    _HAS_TESTCLIENT = False

try:
    from particle_engine.server import app, apply_message, state
    _HAS_SERVER = True
except ImportError:
    _HAS_SERVER = False

from particle_engine.config import EngineConfig
from particle_engine.session import Session

pytestmark = pytest.mark.skipif(
    not (_HAS_TESTCLIENT and _HAS_SERVER),
    reason="fastapi not installed"
)


@pytest.fixture
def client():
    state.config = EngineConfig(particle_count=60, camera_enabled=False, seed=0)
    state.session = None
    state.feed = None
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    state.session = None


def receive_type(ws, kind, limit=500):
    for _ in range(limit):
        msg = ws.receive_json()
        if msg["type"] == kind:
            return msg
    raise AssertionError(f"no {kind!r} message received")


class TestRESTEndpoints:
    def test_api_status(self, client):
        resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["shape"] == "sphere"
        assert data["particles"] == 60
        assert data["tracking"] is False
        assert "clients" in data

    def test_api_shapes(self, client):
        data = client.get("/api/shapes").json()
        assert len(data["shapes"]) == 8
        assert data["current"] == "sphere"

    def test_api_palettes(self, client):
        data = client.get("/api/palettes").json()
        assert data["palettes"]["rainbow"][0] == "#ff0000"
        assert data["current"] == "rainbow"

    def test_metrics_endpoint(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "particle_engine_ticks_total" in resp.text


class TestWebSocket:
    def test_connect(self, client):
        with client.websocket_connect("/ws") as ws:
            msg = ws.receive_json()
            assert msg["type"] == "connected"
            assert msg["particles"] == 60

    def test_streams_frames(self, client):
        with client.websocket_connect("/ws") as ws:
            frame = receive_type(ws, "frame")
            assert len(frame["positions"]) == 180
            assert len(frame["colors"]) == 180
            assert len(frame["sizes"]) == 60

    def test_shape_message(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "shape", "shape": "heart"})
            status = receive_type(ws, "status")
            assert status["shape"] == "heart"
            assert status["explosion"] > 0

    def test_bad_shape(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "shape", "shape": "cube"})
            assert "cube" in receive_type(ws, "error")["message"]

    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "ping"})
            assert "server_time" in receive_type(ws, "pong")

    def test_non_object_message_keeps_connection(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("[1, 2, 3]")
            assert receive_type(ws, "error")["message"] == "expected a JSON object"
            ws.send_json({"type": "ping"})
            assert "server_time" in receive_type(ws, "pong")

    def test_nan_landmarks_rejected(self, client):
        hand = [[0.5, 0.5]] * 21
        payload = '{"type": "landmarks", "landmarks": [[NaN, 0.5]' + ", [0.5, 0.5]" * 20 + "]}"
        with client.websocket_connect("/ws") as ws:
            ws.send_text(payload)
            assert "finite" in receive_type(ws, "error")["message"]
            ws.send_json({"type": "landmarks", "landmarks": hand})
            assert receive_type(ws, "gesture")["detecting"] is True


class TestApplyMessage:
    def setup_method(self):
        self.session = Session(EngineConfig(particle_count=20, camera_enabled=False))

    def test_palette(self):
        reply = apply_message(self.session, {"type": "palette", "palette": "fire"})
        assert reply["palette"] == "fire"

    def test_key(self):
        apply_message(self.session, {"type": "key", "key": " "})
        assert self.session.state.explosion == 1.0

    def test_landmarks_absent(self):
        reply = apply_message(self.session, {"type": "landmarks", "landmarks": None})
        assert reply["type"] == "gesture"
        assert reply["detecting"] is False

    def test_landmarks_wrong_shape(self):
        reply = apply_message(self.session, {"type": "landmarks", "landmarks": [[0.1, 0.2]]})
        assert reply["type"] == "error"

    def test_missing_field(self):
        assert apply_message(self.session, {"type": "shape"})["type"] == "error"

    def test_unknown_type(self):
        assert apply_message(self.session, {"type": "dance"})["type"] == "error"

    def test_non_numeric_landmarks(self):
        reply = apply_message(self.session, {"type": "landmarks", "landmarks": [[{}, {}]] * 21})
        assert reply["type"] == "error"

    def test_non_object_message(self):
        assert apply_message(self.session, [1, 2])["type"] == "error"
        assert apply_message(self.session, "shape")["type"] == "error"

    def test_nan_landmarks_leave_swarm_finite(self):
        lm = [[0.5, 0.5]] * 21
        lm[0] = [float("nan"), 0.5]
        reply = apply_message(self.session, {"type": "landmarks", "landmarks": lm})
        assert reply["type"] == "error"
        assert self.session.state.gesture.detecting is False

        apply_message(self.session, {"type": "landmarks", "landmarks": None})
        self.session.run_ticks(200)
        assert np.isfinite(self.session.particles.positions).all()
        assert np.isfinite(self.session.particles.velocities).all()
