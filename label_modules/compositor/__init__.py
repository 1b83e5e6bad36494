"""
Mask and highlight rasters built from reconciled field coordinates.
"""
from .services import build_highlight, build_mask, build_mask_array

__all__ = ["build_mask", "build_mask_array", "build_highlight"]
