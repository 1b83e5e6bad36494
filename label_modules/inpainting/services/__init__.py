from .imagen import DEFAULT_PROMPT, ImagenInpainter, extract_sample_bytes

__all__ = ["ImagenInpainter", "extract_sample_bytes", "DEFAULT_PROMPT"]
