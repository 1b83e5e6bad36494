from .services import DEFAULT_PROMPT, ImagenInpainter

__all__ = ["ImagenInpainter", "DEFAULT_PROMPT"]
