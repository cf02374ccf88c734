"""Validation for manually uploaded thumbnail images."""

import io
import logging

from PIL import Image

from percy_thumbnail.errors import ValidationError
from percy_thumbnail.models.capture import MAX_UPLOAD_BYTES, UploadedFile

logger = logging.getLogger(__name__)


def validate_upload(file: UploadedFile, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Cheap checks that need no decoding: size first, then declared type.

    Raises:
        ValidationError: If the file is too large or not declared as an image.
    """
    if file.size > max_bytes:
        raise ValidationError(
            "file too large",
            f"Image must be less than {max_bytes // (1024 * 1024)}MB",
        )
    if not file.content_type.startswith("image/"):
        raise ValidationError("not an image", "Please select an image file")


def decode_check(data: bytes) -> tuple[int, int]:
    """Decode the bytes as an image and return its size.

    ``verify()`` only walks the container, so the pixel data is decoded
    from a second handle as well.

    Raises:
        ValidationError: If Pillow cannot identify, verify or decode the image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            size = img.size
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        # PIL raises SyntaxError for some truncated PNG chunks
        logger.debug(f"Image decode failed: {e}")
        raise ValidationError("invalid image", "Invalid image file. Please try another.") from e
    return size
