"""
Vision-language model access shared by field detection and OCR reconciliation.
"""
from .services.backends import BaseVisionBackend, OpenAIVisionBackend
from .services.client import VisionLLMClient
from .services.json_reply import decode_json_object
from .services.rate_limiter import MinIntervalRateLimiter

__all__ = [
    "BaseVisionBackend",
    "OpenAIVisionBackend",
    "VisionLLMClient",
    "MinIntervalRateLimiter",
    "decode_json_object",
]
