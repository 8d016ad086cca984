import pytest
from PIL import Image
from pydantic import ValidationError

from palmread.config import Settings, _byte_limit, settings


def test_byte_limit_unset_uses_default(monkeypatch):
    monkeypatch.delenv("ENCODED_BYTE_LIMIT", raising=False)
    assert _byte_limit("ENCODED_BYTE_LIMIT", 4 * 1024 * 1024) == 4 * 1024 * 1024
    assert _byte_limit("ENCODED_BYTE_LIMIT") is None


@pytest.mark.parametrize("value", ["", " ", "none", "OFF"])
def test_byte_limit_can_be_disabled(monkeypatch, value):
    monkeypatch.setenv("ENCODED_BYTE_LIMIT", value)
    assert _byte_limit("ENCODED_BYTE_LIMIT", 4 * 1024 * 1024) is None


def test_byte_limit_parses_value(monkeypatch):
    monkeypatch.setenv("RAW_BYTE_LIMIT", " 4089446 ")
    assert _byte_limit("RAW_BYTE_LIMIT") == 4089446


@pytest.mark.parametrize("value", ["0", "-5"])
def test_byte_limit_rejects_non_positive(monkeypatch, value):
    monkeypatch.setenv("ENCODED_BYTE_LIMIT", value)
    with pytest.raises(ValueError):
        _byte_limit("ENCODED_BYTE_LIMIT", 4 * 1024 * 1024)


def test_raw_only_budget(monkeypatch):
    s = Settings()
    monkeypatch.setattr(s, "RAW_BYTE_LIMIT", 1000)
    monkeypatch.setattr(s, "ENCODED_BYTE_LIMIT", None)
    budget = s.budget()
    assert budget.raw_byte_limit == 1000
    assert budget.encoded_byte_limit is None


def test_budget_with_no_limits_is_rejected(monkeypatch):
    s = Settings()
    monkeypatch.setattr(s, "RAW_BYTE_LIMIT", None)
    monkeypatch.setattr(s, "ENCODED_BYTE_LIMIT", None)
    with pytest.raises(ValidationError):
        s.budget()


def test_service_applies_pillow_pixel_ceiling():
    import palmread.main  # noqa: F401

    assert Image.MAX_IMAGE_PIXELS == settings.MAX_IMAGE_PIXELS
