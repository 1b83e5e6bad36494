from .client import VisionLLMClient
from .rate_limiter import MinIntervalRateLimiter

__all__ = ["VisionLLMClient", "MinIntervalRateLimiter"]
