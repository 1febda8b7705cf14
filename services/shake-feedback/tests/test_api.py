import io
import time

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from conftest import ok_jira
from shake_feedback.config import AppSettings
from shake_feedback.coordinator import FeedbackCoordinator
from shake_feedback.main import create_app
from shake_feedback.reporting.client import IssueReporter
from shake_feedback.reporting.models import DeviceMetadata
from shake_feedback.utils import image_to_png_bytes

PREFIX = "/api/v1/feedback"


@pytest.fixture
def client(pinned_config, fake_http, screenshot):
    ok_jira(fake_http, "PROJ-42")
    coordinator = FeedbackCoordinator(
        reporter=IssueReporter(pinned_config, session=fake_http),
        capture=lambda: screenshot,
        metadata_provider=lambda: DeviceMetadata(model="api"),
    )
    return TestClient(create_app(coordinator=coordinator))


def open_session(client, screenshot):
    resp = client.post(
        f"{PREFIX}/sessions",
        params={"container_width": 300, "container_height": 300},
        files={"file": ("shot.png", image_to_png_bytes(screenshot), "image/png")},
    )
    assert resp.status_code == 200
    return resp.json()


def line_events(y=150):
    return {"events": [
        {"kind": "down", "x": 30, "y": y},
        {"kind": "move", "x": 150, "y": y},
        {"kind": "move", "x": 270, "y": y},
        {"kind": "up"},
    ]}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_open_session(client, screenshot):
    body = open_session(client, screenshot)
    assert body["image_width"] == 400 and body["image_height"] == 200
    assert body["display_rect"] == {"x": 0.0, "y": 75.0, "width": 300.0, "height": 150.0}
    assert body["resumed_strokes"] == 0


def test_rejects_non_image(client):
    resp = client.post(f"{PREFIX}/sessions", files={"file": ("x.png", b"nope", "image/png")})
    assert resp.status_code == 400


def test_draw_undo_clear(client, screenshot):
    sid = open_session(client, screenshot)["session_id"]

    resp = client.post(f"{PREFIX}/sessions/{sid}/events", json=line_events())
    body = resp.json()
    assert body["strokes"] == 1
    assert body["dirty"][0] is not None and body["dirty"][-1] is None

    client.post(f"{PREFIX}/sessions/{sid}/tool", json={"kind": "highlighter",
                                                        "color": {"r": 1, "g": 1, "b": 0, "a": 1}})
    client.post(f"{PREFIX}/sessions/{sid}/events", json=line_events(y=100))
    records = client.get(f"{PREFIX}/sessions/{sid}/records").json()
    assert [r["width"] for r in records] == [4.0, 20.0]
    assert records[1]["color"]["a"] == 0.6

    assert client.post(f"{PREFIX}/sessions/{sid}/undo").json() == {"removed": True, "strokes": 1}
    assert client.post(f"{PREFIX}/sessions/{sid}/clear", json={}).json()["cleared"] is False
    assert client.post(f"{PREFIX}/sessions/{sid}/clear", json={"confirm": True}).json() == {
        "cleared": True, "strokes": 0}


def test_render_png(client, screenshot):
    sid = open_session(client, screenshot)["session_id"]
    client.post(f"{PREFIX}/sessions/{sid}/events", json=line_events())
    resp = client.get(f"{PREFIX}/sessions/{sid}/render")
    assert resp.headers["content-type"] == "image/png"
    overlay = Image.open(io.BytesIO(resp.content))
    assert overlay.size == (300, 300)
    assert np.array(overlay)[150, 150, 3] == 255


def test_unknown_pointer_event(client, screenshot):
    sid = open_session(client, screenshot)["session_id"]
    resp = client.post(f"{PREFIX}/sessions/{sid}/events", json={"events": [{"kind": "hover"}]})
    assert resp.status_code == 422


def test_bad_event_rejects_whole_batch(client, screenshot):
    sid = open_session(client, screenshot)["session_id"]
    batch = line_events()
    batch["events"].append({"kind": "bogus"})
    resp = client.post(f"{PREFIX}/sessions/{sid}/events", json=batch)
    assert resp.status_code == 422
    assert client.get(f"{PREFIX}/sessions/{sid}/records").json() == []


def test_unknown_session(client):
    assert client.post(f"{PREFIX}/sessions/missing/undo").status_code == 404
    assert client.get(f"{PREFIX}/result/missing").status_code == 404


def test_send_and_poll(client, screenshot, fake_http):
    sid = open_session(client, screenshot)["session_id"]
    client.post(f"{PREFIX}/sessions/{sid}/events", json=line_events())
    resp = client.post(f"{PREFIX}/sessions/{sid}/send", json={"note": "Misaligned label"})
    body = resp.json()
    assert body["status"] == "processing"
    assert body["result_url"] == f"{PREFIX}/result/{body['request_id']}"

    # The send runs on a worker thread; wait for it through the coordinator
    coordinator = client.app.state.coordinator
    for _ in range(500):
        job = coordinator.result(body["request_id"])
        if job.status != "processing":
            break
        time.sleep(0.01)

    result = client.get(body["result_url"]).json()
    assert result["status"] == "sent"
    assert result["issue_key"] == "PROJ-42"
    assert result["toast"]["text"] == "Sent to Jira ✔︎"
    assert fake_http.calls[0]["json"]["fields"]["summary"] == "Misaligned label"

    assert client.post(f"{PREFIX}/sessions/{sid}/undo").status_code == 404


def test_discard_session(client, screenshot):
    sid = open_session(client, screenshot)["session_id"]
    assert client.delete(f"{PREFIX}/sessions/{sid}").status_code == 200
    assert client.get(f"{PREFIX}/sessions/{sid}/records").status_code == 404


def test_app_from_settings(jira_config, tmp_path):
    app = create_app(AppSettings(jira=jira_config, data_dir=str(tmp_path), app_version="3.1"))
    coordinator = app.state.coordinator
    assert coordinator.reporter.config == jira_config
    assert (tmp_path / "annotations").is_dir()
    assert TestClient(app).get("/health").status_code == 200
