import io
import os

import pytest
from PIL import Image


def make_image_bytes(size=(64, 48), fmt="PNG", mode="RGB", color=(120, 130, 140), noise=False):
    if noise:
        img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
        if mode != "RGB":
            img = img.convert(mode)
    else:
        img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def small_png():
    return make_image_bytes((50, 40), "PNG")


@pytest.fixture
def noisy_jpeg():
    # noise keeps JPEG sizes well above the quality floor, so budgets bite
    return make_image_bytes((800, 600), "JPEG", noise=True)


@pytest.fixture
def client(monkeypatch):
    from fastapi.testclient import TestClient
    from palmread import security
    from palmread.main import app

    monkeypatch.setattr(security, "_API_KEYS", set())
    return TestClient(app)
