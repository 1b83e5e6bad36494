"""
ImagenInpainter - text removal with the Vertex AI Imagen capability model.

One `:predict` call carries the original image as the RAW reference, the mask
as a user-provided MASK reference and asks for several independent samples.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

import google.auth
import requests
from google.auth.transport.requests import AuthorizedSession

from ...config.prompts import INPAINT_REMOVAL_SUFFIX
from ...errors import ForbiddenError, InternalError, ServiceUnavailableError, ValidationError
from utils import logger

ENDPOINT = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}/locations/{location}"
    "/publishers/google/models/{model}:predict"
)
SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
DEFAULT_PROMPT = "clean background, seamless text removal"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def extract_sample_bytes(prediction: Dict[str, Any]) -> Optional[bytes]:
    """Image bytes of one prediction, whichever of the known response shapes it uses."""
    encoded = prediction.get("bytesBase64Encoded")
    if not encoded:
        encoded = (prediction.get("generatedImage") or {}).get("bytesBase64Encoded")
    if not encoded:
        images = prediction.get("images") or []
        if images and isinstance(images[0], dict):
            encoded = images[0].get("bytesBase64Encoded")
    return base64.b64decode(encoded) if encoded else None


class ImagenInpainter:
    def __init__(
        self,
        project_id: str,
        location: str = "us-central1",
        model: str = "imagen-3.0-capability-001",
        sample_count: int = 4,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        if not project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT_ID is required for inpainting")
        self.url = ENDPOINT.format(location=location, project=project_id, model=model)
        self.sample_count = sample_count
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            credentials, _ = google.auth.default(scopes=SCOPES)
            self._session = AuthorizedSession(credentials)
        return self._session

    def build_request(self, image_bytes: bytes, mask_bytes: bytes, prompt: str) -> Dict[str, Any]:
        return {
            "instances": [
                {
                    "prompt": f"{prompt or DEFAULT_PROMPT}. {INPAINT_REMOVAL_SUFFIX}",
                    "referenceImages": [
                        {
                            "referenceType": "REFERENCE_TYPE_RAW",
                            "referenceId": 1,
                            "referenceImage": {"bytesBase64Encoded": _b64(image_bytes)},
                        },
                        {
                            "referenceType": "REFERENCE_TYPE_MASK",
                            "referenceId": 2,
                            "referenceImage": {"bytesBase64Encoded": _b64(mask_bytes)},
                            "maskImageConfig": {"maskMode": "MASK_MODE_USER_PROVIDED", "dilation": 0.01},
                        },
                    ],
                }
            ],
            "parameters": {
                "sampleCount": self.sample_count,
                "guidanceScale": 12,
                "language": "en",
                "editMode": "EDIT_MODE_INPAINT_REMOVAL",
            },
        }

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.post(self.url, json=body, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise ServiceUnavailableError(f"Inpainting request failed: {e}") from e

        if resp.status_code in (401, 403):
            raise ForbiddenError(f"Inpainting access denied ({resp.status_code}): {resp.text[:500]}")
        if resp.status_code == 429 or resp.status_code >= 500:
            raise ServiceUnavailableError(f"Inpainting backend unavailable ({resp.status_code}): {resp.text[:500]}")
        if resp.status_code == 400:
            raise ValidationError(f"Inpainting request rejected: {resp.text[:500]}")
        if not resp.ok:
            raise InternalError(f"Inpainting failed ({resp.status_code}): {resp.text[:500]}")
        return resp.json()

    def inpaint(self, image_bytes: bytes, mask_bytes: bytes, prompt: str = DEFAULT_PROMPT) -> List[bytes]:
        """Return the decoded sample images; predictions without image data are skipped.

        Raises:
            InternalError: the call succeeded but produced no usable sample.
        """
        logger.step(f"Requesting {self.sample_count} inpainting samples")
        payload = self._post(self.build_request(image_bytes, mask_bytes, prompt))

        samples: List[bytes] = []
        for i, prediction in enumerate(payload.get("predictions") or []):
            data = extract_sample_bytes(prediction) if isinstance(prediction, dict) else None
            if data is None:
                logger.warning(f"No image data found in prediction {i + 1}, skipping")
                continue
            samples.append(data)

        if not samples:
            raise InternalError("No valid images were generated from the predictions")
        logger.success(f"Received {len(samples)} inpainted samples")
        return samples
