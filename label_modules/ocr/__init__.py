from .models import OCRToken, OCRPage
from .services.vision import GoogleVisionOCR

__all__ = [
    "OCRToken",
    "OCRPage",
    "GoogleVisionOCR",
]
