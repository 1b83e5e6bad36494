"""
DetailRestorer - puts original pixels back outside the inpainted region.

Inpainting models regenerate the whole frame and soften fine print they were
never asked to touch. Given the original, the mask (white = regenerated) and the
inpainted image, the restorer keeps inpainted pixels inside the mask and the
original everywhere else, with an optionally feathered seam.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from ...compositor.services.raster import decode_image, encode_png
from ...errors import InternalError, ValidationError
from utils import logger

MASK_CHANNELS = ("red", "green", "blue", "alpha", "auto")
BLEND_MODES = ("normal", "hard")
MASK_THRESHOLD = 128
_BGR_INDEX = {"blue": 0, "green": 1, "red": 2}


@dataclass
class RestoreOptions:
    feather_radius: float = 1.0
    blend_mode: str = "normal"
    mask_channel: str = "red"

    def __post_init__(self):
        self.blend_mode = (self.blend_mode or "normal").lower()
        self.mask_channel = (self.mask_channel or "red").lower()
        if self.blend_mode not in BLEND_MODES:
            raise ValidationError(f"blendMode must be one of {BLEND_MODES}, got '{self.blend_mode}'")
        if self.mask_channel not in MASK_CHANNELS:
            raise ValidationError(f"maskChannel must be one of {MASK_CHANNELS}, got '{self.mask_channel}'")
        if self.feather_radius < 0:
            raise ValidationError("featherRadius must not be negative")


def select_mask_channel(mask: np.ndarray, channel: str) -> np.ndarray:
    """Single-channel view of `mask` for the requested channel."""
    if mask.ndim == 2:
        return mask
    n = mask.shape[2]
    if channel == "alpha":
        if n == 4:
            return mask[:, :, 3]
        logger.warning("Mask has no alpha channel, using grayscale instead")
        return cv2.cvtColor(mask[:, :, :3], cv2.COLOR_BGR2GRAY)
    if channel == "auto":
        # channel with the widest value spread carries the mask
        spreads = [int(mask[:, :, i].max()) - int(mask[:, :, i].min()) for i in range(min(3, n))]
        return mask[:, :, int(np.argmax(spreads))]
    return mask[:, :, _BGR_INDEX[channel]]


def mask_weights(mask: np.ndarray, options: RestoreOptions) -> np.ndarray:
    """Float weights in [0, 1]: 1 keeps the inpainted pixel, 0 keeps the original."""
    binary = (mask >= MASK_THRESHOLD).astype(np.float32)
    if options.blend_mode == "normal" and options.feather_radius > 0:
        binary = cv2.GaussianBlur(binary, (0, 0), sigmaX=options.feather_radius)
    return binary


class DetailRestorer:
    def restore(
        self,
        original_bytes: bytes,
        mask_bytes: bytes,
        inpainted_bytes: bytes,
        options: RestoreOptions = None,
    ) -> bytes:
        """Return PNG bytes of the restored image.

        Raises:
            ValidationError: an input could not be decoded.
            InternalError: the three images differ in pixel dimensions.
        """
        options = options or RestoreOptions()
        original = decode_image(original_bytes)
        inpainted = decode_image(inpainted_bytes)
        mask = decode_image(mask_bytes, cv2.IMREAD_UNCHANGED)

        shapes = {"original": original.shape[:2], "mask": mask.shape[:2], "inpainted": inpainted.shape[:2]}
        if len(set(shapes.values())) != 1:
            raise InternalError(
                "Original, mask and inpainted images must have the same dimensions",
                details={k: f"{w}x{h}" for k, (h, w) in shapes.items()},
            )

        if mask.dtype != np.uint8:
            mask = cv2.convertScaleAbs(mask, alpha=255.0 / float(np.iinfo(mask.dtype).max))
        weights = mask_weights(select_mask_channel(mask, options.mask_channel), options)[:, :, None]

        out = original.astype(np.float32) * (1.0 - weights) + inpainted.astype(np.float32) * weights
        restored = np.clip(np.rint(out), 0, 255).astype(np.uint8)
        logger.success(
            f"Restored details ({options.mask_channel} channel, {options.blend_mode}, "
            f"feather {options.feather_radius})"
        )
        return encode_png(restored)
