from __future__ import annotations

from typing import List, Sequence, Tuple

import cv2
import numpy as np

from ...config.fields import HIGHLIGHT_ALPHA, HIGHLIGHT_PALETTE
from ...errors import InternalError, ValidationError
from ...geometry import PixelBox, bounding_box, pad_and_clamp
from ...reconciler.models import SelectedField
from utils import logger


def decode_image(data: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), flags)
    if img is None:
        raise ValidationError("Image bytes could not be decoded")
    return img


def encode_png(img: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        raise InternalError("PNG encoding failed")
    return buf.tobytes()


def field_boxes(
    selected_fields: Sequence[SelectedField], padding: int, image_size: Tuple[int, int]
) -> List[PixelBox]:
    """Padded, clamped, half-open pixel rectangle per field, in field order."""
    width, height = image_size
    return [
        pad_and_clamp(bounding_box(f.combined_coordinates), padding, width, height)
        for f in selected_fields
    ]


def build_mask_array(
    image_size: Tuple[int, int], selected_fields: Sequence[SelectedField], padding: int = 5
) -> np.ndarray:
    """Single-channel uint8 mask: 255 inside every field rectangle, 0 elsewhere."""
    width, height = image_size
    mask = np.zeros((height, width), dtype=np.uint8)
    for x1, y1, x2, y2 in field_boxes(selected_fields, padding, image_size):
        mask[y1:y2, x1:x2] = 255
    return mask


def build_mask(
    image_size: Tuple[int, int], selected_fields: Sequence[SelectedField], padding: int = 5
) -> bytes:
    mask = build_mask_array(image_size, selected_fields, padding)
    logger.debug(f"Mask covers {int(np.count_nonzero(mask))} of {mask.size} pixels")
    return encode_png(mask)


def build_highlight(image_bytes: bytes, selected_fields: Sequence[SelectedField], padding: int = 5) -> bytes:
    """Original image with a translucent palette colour over each field rectangle."""
    img = decode_image(image_bytes)
    height, width = img.shape[:2]
    for i, (x1, y1, x2, y2) in enumerate(field_boxes(selected_fields, padding, (width, height))):
        if x2 <= x1 or y2 <= y1:
            continue
        roi = img[y1:y2, x1:x2]
        overlay = np.empty_like(roi)
        overlay[:] = HIGHLIGHT_PALETTE[i % len(HIGHLIGHT_PALETTE)]
        img[y1:y2, x1:x2] = cv2.addWeighted(overlay, HIGHLIGHT_ALPHA, roi, 1.0 - HIGHLIGHT_ALPHA, 0)
    return encode_png(img)
