from __future__ import annotations
from typing import Optional
import time

from utils import logger


class BaseVisionBackend:
    """One image + one prompt in, the model's raw text reply out."""

    name: str = "base"
    version: str = "0.0.0"

    def __init__(self, **kwargs):
        self.cfg = kwargs

    def complete(self, prompt: str, image_bytes: bytes, system: Optional[str] = None) -> str:
        raise NotImplementedError

    def __call__(self, prompt: str, image_bytes: bytes, system: Optional[str] = None) -> str:
        t0 = time.time()
        text = self.complete(prompt, image_bytes, system=system)
        latency_ms = (time.time() - t0) * 1000.0
        logger.debug(f"{self.name}:{self.version} replied in {latency_ms:.0f}ms ({len(text)} chars)")
        return text
