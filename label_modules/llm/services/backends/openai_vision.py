from __future__ import annotations
import io, base64
from typing import Optional, Tuple
from .base import BaseVisionBackend

from openai import OpenAI
from PIL import Image, UnidentifiedImageError

_PASSTHROUGH_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


def _to_model_image(img: bytes) -> Tuple[bytes, str]:
    """Return bytes + mime type the endpoint accepts, re-encoding exotic formats to PNG."""
    try:
        pil = Image.open(io.BytesIO(img))
        fmt = (pil.format or "").upper()
        if fmt in _PASSTHROUGH_FORMATS:
            return bytes(img), _PASSTHROUGH_FORMATS[fmt]
        buf = io.BytesIO()
        pil.convert("RGB").save(buf, format="PNG")
        return buf.getvalue(), "image/png"
    except UnidentifiedImageError:
        # let the endpoint reject it with a proper error
        return bytes(img), "image/jpeg"


def _to_data_uri(data: bytes, mime: str) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{b64}"


class OpenAIVisionBackend(BaseVisionBackend):
    """
    Calls an OpenAI-compatible vision chat endpoint (Gemini's compatibility
    endpoint by default) with one prompt and one image per request.

    Errors from the `openai` client propagate untouched; `VisionLLMClient`
    decides which ones are retried.
    """

    name: str = "openai-vision"
    version: str = "1.0.0"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        timeout: float = 30.0,
        system_prompt: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            base_url=base_url,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            system_prompt=system_prompt
            or "You are a precise packaging-label analyst. Reply with JSON only.",
            **kwargs,
        )
        if not api_key:
            raise ValueError("GEMINI_API_KEY environment variable is not set and no api_key was provided.")
        # retries are owned by VisionLLMClient so the rate limiter sees every attempt
        self._client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout, max_retries=0)
        self._remote_model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._system_prompt = self.cfg["system_prompt"]

    def complete(self, prompt: str, image_bytes: bytes, system: Optional[str] = None) -> str:
        data, mime = _to_model_image(image_bytes)
        out = self._client.chat.completions.create(
            model=self._remote_model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            messages=[
                {"role": "system", "content": system or self._system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": _to_data_uri(data, mime)}},
                    ],
                },
            ],
        )
        if not out.choices:
            return ""
        return (out.choices[0].message.content or "").strip()
