"""
Tests for the FastAPI surface:
- Blur toggle and status reporting
- Model pre-warm at startup
- WebSocket frame detection and per-frame error reporting
- Remote-control mailbox endpoints
"""

import base64
import json

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

import humanseg.app
from humanseg.app import AppState, create_app
from humanseg.detection.service import HumanDetectionService
from tests.fakes import FakeCapability, FakeRuntime


def _png_frame(width: int, height: int) -> bytes:
    frame = np.full((height, width, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", frame)
    assert ok
    return buf.tobytes()


def _decode_mask(encoded: str) -> np.ndarray:
    raw = np.frombuffer(base64.b64decode(encoded), dtype=np.uint8)
    return cv2.imdecode(raw, cv2.IMREAD_GRAYSCALE)


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def client(capability):
    app = create_app(service_factory=lambda: HumanDetectionService(capability, FakeRuntime()))
    with TestClient(app) as c:
        yield c


class TestBlurToggle:
    """Tests for /api/blur and /api/status."""

    def test_status_before_enable(self, client):
        response = client.get("/api/status")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "uninitialized"
        assert body["enabled"] is False
        assert body["backend"] is None
        assert body["stats"]["frames"] == 0

    def test_enable_initializes_service(self, client, capability):
        response = client.post("/api/blur", json={"enabled": True})

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "ready"
        assert body["enabled"] is True
        assert body["backend"] == "cuda"
        assert len(capability.load_calls) == 1

    def test_enable_twice_loads_once(self, client, capability):
        client.post("/api/blur", json={"enabled": True})
        client.post("/api/blur", json={"enabled": True})

        assert len(capability.load_calls) == 1

    def test_load_failure_reports_unavailable(self, client, capability):
        capability.load_error = OSError("weights download failed")

        response = client.post("/api/blur", json={"enabled": True})

        assert response.status_code == 503
        assert response.json()["code"] == "MODEL_LOAD_FAILED"
        assert client.get("/api/status").json()["enabled"] is False

    def test_disable_disposes(self, client, capability):
        client.post("/api/blur", json={"enabled": True})

        response = client.post("/api/blur", json={"enabled": False})

        body = response.json()
        assert body["state"] == "disposed"
        assert body["enabled"] is False
        assert len(capability.released) == 1

    def test_reenable_after_disable(self, client, capability):
        client.post("/api/blur", json={"enabled": True})
        client.post("/api/blur", json={"enabled": False})

        response = client.post("/api/blur", json={"enabled": True})

        assert response.json()["state"] == "ready"
        assert len(capability.load_calls) == 2


class TestStartupPrewarm:
    """Tests for loading the model at startup when BLUR_ON_STARTUP is set."""

    @pytest.fixture(autouse=True)
    def blur_on_startup(self, monkeypatch):
        monkeypatch.setattr(humanseg.app.settings, "BLUR_ON_STARTUP", True)

    @staticmethod
    def _wait_for_prewarm(client, state):
        for _ in range(100):
            if state.prewarm_task.done():
                return
            client.get("/api/status")
        pytest.fail("pre-warm did not finish")

    def test_prewarm_enables_blur(self, capability):
        state = AppState()
        app = create_app(
            service_factory=lambda: HumanDetectionService(capability, FakeRuntime()),
            state=state,
        )

        with TestClient(app) as client:
            self._wait_for_prewarm(client, state)
            body = client.get("/api/status").json()

        assert body["state"] == "ready"
        assert body["enabled"] is True
        assert len(capability.load_calls) == 1
        assert state.service.state.value == "disposed"

    def test_prewarm_failure_is_logged(self, capability, caplog):
        capability.load_error = OSError("weights download failed")
        state = AppState()
        app = create_app(
            service_factory=lambda: HumanDetectionService(capability, FakeRuntime()),
            state=state,
        )

        with caplog.at_level("ERROR", logger="humanseg.app"):
            with TestClient(app) as client:
                self._wait_for_prewarm(client, state)
                body = client.get("/api/status").json()

        assert body["state"] == "uninitialized"
        assert body["enabled"] is False
        assert "Failed to pre-warm detection model" in caplog.text


class TestDetectSocket:
    """Tests for the /ws/detect WebSocket."""

    def test_not_initialized(self, client):
        with client.websocket_connect("/ws/detect") as ws:
            ws.send_bytes(_png_frame(4, 2))
            message = json.loads(ws.receive_text())

        assert message["code"] == "NOT_INITIALIZED"

    def test_detects_frame(self, client, capability):
        capability.buffer = np.array([1, 1, 0, 0, 0, 0, 0, 0], dtype=np.uint8)
        client.post("/api/blur", json={"enabled": True})

        with client.websocket_connect("/ws/detect") as ws:
            ws.send_bytes(_png_frame(4, 2))
            message = json.loads(ws.receive_text())

        assert message["width"] == 4
        assert message["height"] == 2
        assert message["confidence"] == pytest.approx(0.25)
        mask = _decode_mask(message["mask"])
        assert mask.shape == (2, 4)
        assert mask[0].tolist() == [255, 255, 0, 0]
        assert not mask[1].any()

        stats = client.get("/api/status").json()["stats"]
        assert stats["frames"] == 1
        assert stats["average_confidence"] == pytest.approx(0.25)

    def test_failed_frame_does_not_end_session(self, client, capability):
        client.post("/api/blur", json={"enabled": True})

        with client.websocket_connect("/ws/detect") as ws:
            capability.infer_error = RuntimeError("Segmentation failed")
            ws.send_bytes(_png_frame(4, 2))
            failed = json.loads(ws.receive_text())

            capability.infer_error = None
            ws.send_bytes(_png_frame(4, 2))
            recovered = json.loads(ws.receive_text())

        assert failed["code"] == "DETECTION_FAILED"
        assert recovered["width"] == 4

        stats = client.get("/api/status").json()["stats"]
        assert stats["failures"] == 1
        assert stats["frames"] == 1

    def test_undecodable_frame(self, client):
        client.post("/api/blur", json={"enabled": True})

        with client.websocket_connect("/ws/detect") as ws:
            ws.send_bytes(b"not an image")
            message = json.loads(ws.receive_text())

        assert message["error"] == "Could not decode frame"
        assert message["code"] is None


class TestControl:
    """Tests for the /api/control mailbox."""

    def test_post_then_get_clears(self, client):
        response = client.post("/api/control", json={"command": "next-slide"})
        assert response.json() == {"status": "ok"}

        assert client.get("/api/control").json() == {"command": "next-slide"}
        assert client.get("/api/control").json() == {"command": None}

    def test_last_command_wins(self, client):
        client.post("/api/control", json={"command": "next-slide"})
        client.post("/api/control", json={"command": "toggle-blur"})

        assert client.get("/api/control").json() == {"command": "toggle-blur"}
