from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from ...errors import ValidationError
from ..models import ImageInfo

ALLOWED_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def validate_image(data: bytes) -> ImageInfo:
    """Check format and size of an input image and report its dimensions."""
    if not data:
        raise ValidationError("Invalid image: file is empty")
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError(
            f"Invalid image: {len(data)} bytes exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)}MB limit"
        )
    try:
        with Image.open(io.BytesIO(data)) as im:
            fmt = (im.format or "").upper()
            width, height = im.size
            im.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError(f"Invalid image: {e}") from e
    if fmt not in ALLOWED_FORMATS:
        raise ValidationError(f"Invalid image: format {fmt or 'unknown'} is not one of JPEG, PNG, WEBP")
    return ImageInfo(format=fmt, width=width, height=height, size=len(data), mime_type=ALLOWED_FORMATS[fmt])
