from .raster import build_highlight, build_mask, build_mask_array, decode_image, encode_png, field_boxes

__all__ = ["build_mask", "build_mask_array", "build_highlight", "decode_image", "encode_png", "field_boxes"]
