"""
Google Cloud Vision text detection adapter.

`text_detection` returns the whole-image annotation first and one annotation per
detected word after it; the words become `OCRToken`s numbered from 1 in the
order Vision reports them (reading order).
"""

from __future__ import annotations

from typing import Any, List, Optional

from google.api_core import exceptions as gexc
from google.cloud import vision

from ...errors import ForbiddenError, InternalError, ServiceUnavailableError
from ..models import OCRPage, OCRToken
from utils import logger


def _vertices_to_polygon(vertices: Any):
    # Vision omits zero-valued coordinates
    pts = [(float(getattr(v, "x", 0) or 0), float(getattr(v, "y", 0) or 0)) for v in vertices]
    if len(pts) < 4:
        pts += [pts[-1] if pts else (0.0, 0.0)] * (4 - len(pts))
    return tuple(pts[:4])


class GoogleVisionOCR:
    def __init__(self, client: Optional[Any] = None, timeout: float = 30.0):
        self.client = client or vision.ImageAnnotatorClient()
        self.timeout = timeout

    def recognize(self, image_bytes: bytes) -> OCRPage:
        try:
            response = self.client.text_detection(
                image=vision.Image(content=image_bytes), timeout=self.timeout
            )
        except gexc.PermissionDenied as e:
            raise ForbiddenError(f"Vision OCR access denied: {e.message}") from e
        except (gexc.ResourceExhausted, gexc.ServiceUnavailable, gexc.DeadlineExceeded) as e:
            raise ServiceUnavailableError(f"Vision OCR unavailable: {e.message}") from e
        except gexc.GoogleAPICallError as e:
            raise InternalError(f"Vision OCR call failed: {e.message}") from e

        if response.error and response.error.message:
            raise InternalError(f"Vision OCR returned an error: {response.error.message}")

        return self.parse_annotations(list(response.text_annotations))

    @staticmethod
    def parse_annotations(annotations: List[Any]) -> OCRPage:
        if not annotations:
            logger.warning("OCR found no text in the image")
            return OCRPage(full_text="", tokens=())

        tokens: List[OCRToken] = []
        for index, ann in enumerate(annotations[1:]):
            conf = getattr(ann, "confidence", None)
            tokens.append(
                OCRToken(
                    id=index + 1,
                    text=ann.description,
                    coordinates=_vertices_to_polygon(ann.bounding_poly.vertices),
                    confidence=float(conf) if conf else None,
                )
            )
        logger.info(f"OCR detected {len(tokens)} text tokens")
        return OCRPage(full_text=annotations[0].description or "", tokens=tuple(tokens))
