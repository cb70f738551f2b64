import pytest
from fastapi.testclient import TestClient

from dribblecam.api.main import app
from dribblecam.api.services import state as engine_state
from dribblecam.api.services.state import get_engine
from dribblecam.core.analytics.session import DrillSession
from dribblecam.core.config.settings import DribbleSettings
from dribblecam.core.types import DecodeStatus, FrameResult, LastKnown, Tracked, ValidatedBox


class FakeClock:
    def __init__(self):
        self.now = 10.0

    def __call__(self):
        return self.now


class DummyEngine:
    def __init__(self, result=None, error=None):
        self._result = result
        self.last_error = error
        self.version = 0 if result is None else 1
        self.session = DrillSession(countdown_s=3.0, duration_s=60.0, clock=FakeClock())

    def latest_result(self):
        return self._result

    def latest_versioned(self):
        return self.version, self._result

    def publish(self, result):
        self._result = result
        self.version += 1

    def start(self):
        pass

    def stop(self):
        pass

    def fps(self):
        return 24.5

    def dropped_batches(self):
        return 2


def _tracked_result(count: int = 0) -> FrameResult:
    box = ValidatedBox(x=0.4, y=0.5, w=0.1, h=0.1, conf=0.92)
    return FrameResult(
        frame_id=7,
        timestamp=1.25,
        frame_width=1280,
        frame_height=720,
        chosen=Tracked(center=box.center, confidence=0.92, box=box),
        count=count,
    )


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def dummy_engine():
    engine = DummyEngine(result=_tracked_result())
    app.dependency_overrides[get_engine] = lambda: engine
    yield engine
    app.dependency_overrides.pop(get_engine, None)


def test_health_endpoint(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_stats_with_result(client, dummy_engine):
    res = client.get("/stats")
    assert res.status_code == 200
    data = res.json()
    assert data["tracked"] is True
    assert data["fps"] == 24.5
    assert data["count"] == 0
    assert data["phase"] == "idle"
    assert data["dropped_batches"] == 2
    assert data["error"] is None


def test_stats_without_result_reports_error(client):
    engine = DummyEngine(result=None, error="Failed to initialize video source")
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        res = client.get("/stats")
    finally:
        app.dependency_overrides.pop(get_engine, None)

    assert res.status_code == 200
    data = res.json()
    assert data["tracked"] is False
    assert data["error"] == "Failed to initialize video source"


def test_session_start_and_end(client, dummy_engine):
    res = client.get("/session")
    assert res.json()["phase"] == "idle"

    res = client.post("/session/start")
    assert res.status_code == 200
    data = res.json()
    assert data["phase"] == "countdown"
    assert data["countdown_remaining"] == 3.0
    assert data["time_remaining"] == 60.0

    dummy_engine.session._clock.now += 3.0
    assert client.get("/session").json()["phase"] == "active"

    res = client.post("/session/end")
    data = res.json()
    assert data["phase"] == "idle"
    assert data["count"] == 0
    assert data["countdown_remaining"] is None


def test_config_validation(client):
    payload = {
        "video_source": "webcam",
        "model_path": "basketball_detector.onnx",
        "confidence_threshold": 1.2,
    }
    res = client.post("/config", json=payload)
    assert res.status_code == 422

    payload = {"video_source": "webcam", "model_path": "m.onnx", "position_axis": "z"}
    assert client.post("/config", json=payload).status_code == 422


def test_config_update_reloads_settings(client, monkeypatch):
    monkeypatch.setattr(engine_state, "_settings", None)
    monkeypatch.setattr(engine_state, "_engine", None)
    monkeypatch.setattr(engine_state, "load_settings", lambda: DribbleSettings())

    payload = {"video_source": "webcam", "model_path": "m.onnx", "cooldown_s": 0.3}
    res = client.post("/config", json=payload)
    assert res.status_code == 200
    assert res.json()["cooldown_s"] == 0.3
    assert client.get("/config").json()["cooldown_s"] == 0.3


def test_presets_list_and_apply(client, monkeypatch):
    monkeypatch.setattr(engine_state, "_settings", None)
    monkeypatch.setattr(engine_state, "_engine", None)
    monkeypatch.setattr(engine_state, "load_settings", lambda: DribbleSettings())

    res = client.get("/config/presets")
    ids = [p["id"] for p in res.json()["presets"]]
    assert "strict" in ids

    res = client.post("/config/presets/strict")
    assert res.status_code == 200
    assert res.json()["max_gap_frames"] == 15

    assert client.post("/config/presets/unknown").status_code == 404


def test_metadata_websocket_sends_camel_case_payload(client, monkeypatch):
    tracked = _tracked_result(count=3)

    monkeypatch.setattr(engine_state, "_engine", DummyEngine(result=tracked))
    with client.websocket_connect("/stream/metadata") as ws:
        data = ws.receive_json()

    assert data["frameWidth"] == 1280
    assert data["frameHeight"] == 720
    assert data["tracked"] is True
    assert data["count"] == 3
    assert data["status"] == "ok"
    assert "lastKnown" not in data
    (ball,) = data["detections"]
    assert ball["centerX"] == pytest.approx(0.45)
    assert ball["confidence"] == pytest.approx(0.92)


def test_metadata_websocket_reports_last_known_and_errors(client, monkeypatch):
    result = FrameResult(
        frame_id=8,
        timestamp=1.3,
        frame_width=1280,
        frame_height=720,
        chosen=LastKnown(center=(0.45, 0.55), frames_since_seen=2),
        status=DecodeStatus.INFERENCE_FAILED,
        error="inference_failed",
        message="boom",
    )

    monkeypatch.setattr(engine_state, "_engine", DummyEngine(result=result))
    with client.websocket_connect("/stream/metadata") as ws:
        data = ws.receive_json()

    assert data["detections"] == []
    assert data["tracked"] is False
    assert data["lastKnown"] == {"centerX": 0.45, "centerY": 0.55, "framesSinceSeen": 2}
    assert data["status"] == "inference_failed"
    assert data["error"] == "inference_failed"
    assert data["message"] == "boom"


def test_metadata_websocket_follows_engine_after_reload(client, monkeypatch):
    def _at(ts: float) -> FrameResult:
        return FrameResult(frame_id=1, timestamp=ts, frame_width=64, frame_height=48, chosen=None)

    first = DummyEngine(result=_at(1.0))
    second = DummyEngine()

    def _make_engine(settings, session=None):
        second.session = session
        return second

    monkeypatch.setattr(engine_state, "_settings", DribbleSettings())
    monkeypatch.setattr(engine_state, "_engine", first)
    monkeypatch.setattr(engine_state, "load_settings", lambda: DribbleSettings())
    monkeypatch.setattr(engine_state, "DrillEngine", _make_engine)

    with client.websocket_connect("/stream/metadata") as ws:
        received = [ws.receive_json()["timestamp"]]
        engine_state.reload_settings({"deadzone": 0.03})
        assert engine_state._engine is second
        # Same version number as the old engine's frame; still a new frame.
        second.publish(_at(2.0))
        received.append(ws.receive_json()["timestamp"])

    assert received == [1.0, 2.0]
    assert second.session is first.session
