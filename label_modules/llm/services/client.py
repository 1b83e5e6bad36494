"""
VisionLLMClient - rate-limited, retrying front door to a vision backend.

Transient failures (HTTP 429, 5xx overload, timeouts, dropped connections) are
retried with exponential backoff plus jitter up to `max_retries` attempts.
Anything still failing is raised as a taxonomy error so callers can pick their
fallback path without knowing about `openai` exception classes.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Optional

import openai

from ...errors import ForbiddenError, ServiceUnavailableError
from .backends.base import BaseVisionBackend
from .rate_limiter import MinIntervalRateLimiter
from utils import logger

RETRYABLE_ERRORS = (
    openai.RateLimitError,
    openai.InternalServerError,
    openai.APITimeoutError,
    openai.APIConnectionError,
)
ACCESS_ERRORS = (openai.AuthenticationError, openai.PermissionDeniedError)


class VisionLLMClient:
    def __init__(
        self,
        backend: BaseVisionBackend,
        limiter: MinIntervalRateLimiter,
        max_retries: int = 3,
        backoff_base_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.backend = backend
        self.limiter = limiter
        self.max_retries = max_retries
        self.backoff_base_s = backoff_base_s
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt `attempt` (1-based): base * 2^(attempt-1) + jitter in [0, base)."""
        return self.backoff_base_s * (2 ** (attempt - 1)) + self._rng.uniform(0, self.backoff_base_s)

    def generate(self, prompt: str, image_bytes: bytes, purpose: str = "analysis") -> str:
        """Send one prompt + image and return the raw reply text.

        Raises:
            ServiceUnavailableError: every attempt failed with a transient error, or
                the endpoint rejected the request outright.
            ForbiddenError: the endpoint rejected our credentials.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            self.limiter.acquire()
            try:
                return self.backend(prompt, image_bytes)
            except RETRYABLE_ERRORS as e:
                last_exc = e
                logger.warning(
                    f"Vision model {purpose} call failed (attempt {attempt}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries:
                    self._sleep(self.backoff_delay(attempt))
            except ACCESS_ERRORS as e:
                raise ForbiddenError(f"Vision model rejected credentials: {e}") from e
            except openai.APIError as e:
                raise ServiceUnavailableError(f"Vision model {purpose} call failed: {e}") from e

        raise ServiceUnavailableError(
            f"Vision model {purpose} call failed after {self.max_retries} attempts: {last_exc}"
        ) from last_exc
