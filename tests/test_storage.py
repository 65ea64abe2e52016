import pytest
from fastapi import HTTPException

from anantam_api import storage


def test_valid_image_returns_extension():
    assert storage.validate_image_upload("Cover.JPG", "image/jpeg", 1024) == "jpg"


@pytest.mark.parametrize(
    "filename, content_type, size",
    [
        ("cover.png", "application/pdf", 10),
        ("../cover.png", "image/png", 10),
        ("cover.exe", "image/png", 10),
        ("cover.png", "image/png", storage.MAX_IMAGE_SIZE + 1),
    ],
)
def test_invalid_uploads_are_rejected(filename, content_type, size):
    with pytest.raises(HTTPException) as exc:
        storage.validate_image_upload(filename, content_type, size)
    assert exc.value.status_code == 400


def test_no_url_without_storage():
    assert storage.image_url_for("workshops/1/a.png") is None
    assert storage.image_url_for(None) is None


def test_upload_puts_object_under_prefix(monkeypatch):
    calls = []

    class FakeR2:
        def put_object(self, **kwargs):
            calls.append(kwargs)

    monkeypatch.setattr(storage, "get_r2_client", lambda: FakeR2())

    key = storage.upload_image("workshops/7", b"data", "image/png", "png")

    assert key.startswith("workshops/7/") and key.endswith(".png")
    assert calls[0]["Key"] == key
    assert calls[0]["ContentType"] == "image/png"
