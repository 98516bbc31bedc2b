import base64
import threading
from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from bg_remover.api_server import app, sessions


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    sessions.clear()


def png_bytes():
    arr = np.full((4, 4, 3), 255, dtype=np.uint8)
    arr[1:3, 1:3] = (255, 0, 0)
    out = BytesIO()
    PILImage.fromarray(arr).save(out, format="PNG")
    return out.getvalue()


def upload(client, data=None, name="logo.png", **form):
    form["image"] = (BytesIO(png_bytes() if data is None else data), name)
    return client.post("/api/load-image", data=form, content_type="multipart/form-data")


def decode_alpha(data_url):
    assert data_url.startswith("data:image/png;base64,")
    raw = base64.b64decode(data_url.split(",", 1)[1])
    return np.asarray(PILImage.open(BytesIO(raw)).convert("RGBA"))[:, :, 3]


def test_health(client):
    body = client.get("/api/health").get_json()
    assert body["status"] == "healthy"


def test_load_image(client):
    resp = upload(client)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["session_id"] in sessions
    assert (body["width"], body["height"]) == (4, 4)
    assert body["background"] == [255, 255, 255]
    assert body["background_hex"] == "#ffffff"
    assert body["threshold"] == 20
    assert body["filename"] == "logo_no_bg.png"
    alpha = decode_alpha(body["image"])
    assert alpha[1:3, 1:3].tolist() == [[255, 255], [255, 255]]
    assert alpha.sum() == 4 * 255


def test_load_image_with_threshold(client):
    body = upload(client, threshold="400").get_json()
    assert body["threshold"] == 400
    assert decode_alpha(body["image"]).max() == 0


def test_threshold_change(client):
    session_id = upload(client).get_json()["session_id"]
    resp = client.post("/api/threshold", json={"session_id": session_id, "threshold": 400})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["threshold"] == 400
    assert decode_alpha(body["image"]).max() == 0


@pytest.mark.parametrize("threshold", [-1, "20", None])
def test_threshold_rejected(client, threshold):
    session_id = upload(client).get_json()["session_id"]
    resp = client.post("/api/threshold", json={"session_id": session_id, "threshold": threshold})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_threshold_unknown_session(client):
    resp = client.post("/api/threshold", json={"session_id": "nope", "threshold": 5})
    assert resp.status_code == 400


def test_new_upload_resets_threshold(client):
    session_id = upload(client).get_json()["session_id"]
    client.post("/api/threshold", json={"session_id": session_id, "threshold": 80})
    body = upload(client, session_id=session_id).get_json()
    assert body["session_id"] == session_id
    assert body["threshold"] == 20


def test_download(client):
    session_id = upload(client, name="My Logo.png").get_json()["session_id"]
    resp = client.get(f"/api/download/{session_id}")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert "My_Logo_no_bg.png" in resp.headers["Content-Disposition"]
    alpha = np.asarray(PILImage.open(BytesIO(resp.data)).convert("RGBA"))[:, :, 3]
    assert alpha.sum() == 4 * 255


def test_download_unknown_session(client):
    assert client.get("/api/download/nope").status_code == 404


def test_reset(client):
    session_id = upload(client).get_json()["session_id"]
    assert client.post("/api/reset", json={"session_id": session_id}).get_json()["success"] is True
    assert session_id not in sessions
    assert client.get(f"/api/download/{session_id}").status_code == 404
    assert client.post("/api/reset", json={"session_id": session_id}).get_json()["success"] is False


def test_missing_image(client):
    resp = client.post("/api/load-image", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_undecodable_upload(client):
    resp = upload(client, data=b"definitely not a png")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_bad_form_threshold(client):
    assert upload(client, threshold="abc").status_code == 400
    assert upload(client, threshold="-3").status_code == 400


def test_rejected_uploads_leave_no_session(client):
    before = len(sessions)
    for _ in range(3):
        assert upload(client, data=b"junk").status_code == 400
    assert upload(client, threshold="-3").status_code == 400
    assert len(sessions) == before


def test_concurrent_threshold_changes_stay_consistent(client):
    session_id = upload(client).get_json()["session_id"]
    # 100 keeps the red centre (360 away from white), 400 clears it
    thresholds = [100, 400] * 10
    results = []

    def change(value):
        with app.test_client() as c:
            body = c.post("/api/threshold", json={"session_id": session_id, "threshold": value}).get_json()
            results.append((body["threshold"], int(decode_alpha(body["image"]).max())))

    threads = [threading.Thread(target=change, args=(t,)) for t in thresholds]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == len(thresholds)
    for threshold, max_alpha in results:
        assert max_alpha == (255 if threshold == 100 else 0)
