from .vision import GoogleVisionOCR

__all__ = ["GoogleVisionOCR"]
