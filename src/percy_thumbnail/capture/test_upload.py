import io

import pytest
from PIL import Image

from percy_thumbnail.capture.upload import decode_check, validate_upload
from percy_thumbnail.errors import ValidationError
from percy_thumbnail.models.capture import MAX_UPLOAD_BYTES, UploadedFile


def _image_bytes(fmt: str, size=(64, 48)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (255, 0, 0)).save(buffer, format=fmt)
    return buffer.getvalue()


def test_accepts_image_at_limit():
    validate_upload(UploadedFile(filename="a.png", content_type="image/png", data=b"\0" * MAX_UPLOAD_BYTES))


def test_rejects_six_mib_png_citing_size():
    file = UploadedFile(filename="a.png", content_type="image/png", data=b"\0" * (6 * 1024 * 1024))
    with pytest.raises(ValidationError) as exc_info:
        validate_upload(file)
    assert exc_info.value.reason == "file too large"
    assert exc_info.value.user_message == "Image must be less than 5MB"


@pytest.mark.parametrize("content_type", ["text/plain", "application/pdf", "video/mp4", ""])
def test_rejects_non_image_types(content_type):
    file = UploadedFile(filename="a.bin", content_type=content_type, data=b"data")
    with pytest.raises(ValidationError) as exc_info:
        validate_upload(file)
    assert exc_info.value.reason == "not an image"


@pytest.mark.parametrize("fmt", ["PNG", "JPEG", "GIF", "WEBP"])
def test_decode_check_returns_size(fmt):
    assert decode_check(_image_bytes(fmt)) == (64, 48)


@pytest.mark.parametrize("data", [b"", b"hello world", b"\x89PNG\r\n\x1a\n" + b"\0" * 16])
def test_decode_check_rejects_corrupt_bytes(data):
    with pytest.raises(ValidationError) as exc_info:
        decode_check(data)
    assert exc_info.value.reason == "invalid image"


def _truncated_jpeg() -> bytes:
    buffer = io.BytesIO()
    Image.effect_noise((640, 480), 64).convert("RGB").save(buffer, format="JPEG")
    data = buffer.getvalue()
    return data[: len(data) // 3]


def test_decode_check_rejects_truncated_jpeg():
    with pytest.raises(ValidationError) as exc_info:
        decode_check(_truncated_jpeg())
    assert exc_info.value.reason == "invalid image"


def test_decode_check_rejects_oversized_pixel_count(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    with pytest.raises(ValidationError) as exc_info:
        decode_check(_image_bytes("PNG"))
    assert exc_info.value.reason == "invalid image"
