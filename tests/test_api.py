import base64
import io

from PIL import Image

from palmread import security
from palmread.config import settings
from palmread.utils.images import projected_base64_size

from conftest import make_image_bytes


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["budget"]["encoded_byte_limit"] == settings.ENCODED_BYTE_LIMIT
    assert data["max_upload_bytes"] == settings.MAX_UPLOAD_BYTES


def test_resize_returns_jpeg_body(client, small_png):
    files = {"file": ("palm.png", small_png, "image/png")}
    response = client.post("/resize", files=files)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["x-image-width"] == "50"
    assert response.headers["x-image-height"] == "40"
    assert response.headers["x-compress-attempts"] == "1"
    assert Image.open(io.BytesIO(response.content)).format == "JPEG"


def test_resize_base64_payload(client):
    raw = make_image_bytes((3000, 2000), "JPEG")
    files = {"file": ("palm.jpg", raw, "image/jpeg")}
    response = client.post("/resize/base64", files=files)
    assert response.status_code == 200
    data = response.json()
    assert data["mime_type"] == "image/jpeg"
    assert (data["width"], data["height"]) == (1600, 1067)
    assert data["encoded_bytes"] == len(data["image_base64"])
    assert data["encoded_bytes"] == projected_base64_size(data["bytes"])
    assert data["encoded_bytes"] <= settings.ENCODED_BYTE_LIMIT
    decoded = base64.b64decode(data["image_base64"])
    assert decoded[:2] == b"\xff\xd8"
    assert len(data["history"]) == data["attempts"]


def test_unreachable_budget_is_422(client):
    raw = make_image_bytes((400, 300), "PNG", noise=True)
    files = {"file": ("palm.png", raw, "image/png")}
    response = client.post("/resize?raw_byte_limit=1", files=files)
    assert response.status_code == 422
    assert "cannot be reduced enough" in response.json()["detail"]


def test_invalid_limit_override_rejected(client, small_png):
    files = {"file": ("palm.png", small_png, "image/png")}
    response = client.post("/resize?encoded_byte_limit=0", files=files)
    assert response.status_code == 422


def test_empty_file(client):
    files = {"file": ("palm.png", b"", "image/png")}
    response = client.post("/resize", files=files)
    assert response.status_code == 400


def test_wrong_content_type(client):
    raw = make_image_bytes((10, 10), "GIF", mode="P", color=1)
    files = {"file": ("palm.gif", raw, "image/gif")}
    response = client.post("/resize", files=files)
    assert response.status_code == 415


def test_oversized_upload(client, small_png, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    files = {"file": ("palm.png", small_png, "image/png")}
    response = client.post("/resize", files=files)
    assert response.status_code == 413


def test_corrupt_image_is_400(client):
    files = {"file": ("palm.png", b"fakeimagecontent", "image/png")}
    response = client.post("/resize", files=files)
    assert response.status_code == 400
    assert "Invalid image file" in response.json()["detail"]


def test_api_key_enforced_when_configured(client, small_png, monkeypatch):
    monkeypatch.setattr(security, "_API_KEYS", {"secret"})
    files = {"file": ("palm.png", small_png, "image/png")}

    assert client.post("/resize", files=files).status_code == 403
    ok = client.post("/resize", files=files, headers={"X-API-Key": "secret"})
    assert ok.status_code == 200
