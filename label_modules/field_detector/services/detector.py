"""
FieldDetector - finds regulated label fields on a packaging image.

Tiers, in order:

1. vision model with the structured field prompt, parsed as JSON;
2. free-text extraction over the same reply when it is not usable JSON;
3. local OCR label matching when the model call itself fails.

A well-formed `found=false` reply is an answer and skips tiers 2 and 3. The
standalone pack-size scan runs whenever no pack-size field came back.
"""

from __future__ import annotations

from typing import Callable, List

from ...config.fields import describe_fields_for_prompt
from ...config.prompts import FIELD_DETECTION_PROMPT, render
from ...errors import ForbiddenError, NoFieldsFoundError, ServiceUnavailableError
from ...llm.services.client import VisionLLMClient
from ...ocr.models import OCRPage
from ..models import DetectedField, DetectionResult
from .local_detector import LocalFieldDetector, find_standalone_pack_sizes
from .parsing import extract_fields_from_text, parse_detection_reply
from utils import logger

OCRSupplier = Callable[[], OCRPage]


class FieldDetector:
    def __init__(self, llm: VisionLLMClient, local: LocalFieldDetector):
        self.llm = llm
        self.local = local

    def _ask_model(self, image_bytes: bytes) -> DetectionResult:
        prompt = render(FIELD_DETECTION_PROMPT, field_catalogue=describe_fields_for_prompt())
        reply = self.llm.generate(prompt, image_bytes, purpose="field detection")
        logger.debug(f"Field detection reply: {reply[:2000]}")

        parsed = parse_detection_reply(reply)
        if parsed is not None:
            return parsed
        logger.warning("Field detection reply was not usable JSON; scanning the text instead")
        return extract_fields_from_text(reply)

    def _local_fallback(self, ocr_supplier: OCRSupplier) -> DetectionResult:
        fields = self.local.detect(ocr_supplier().tokens)
        return DetectionResult(
            found=bool(fields),
            fields=fields,
            confidence="medium" if fields else "low",
            method="local_ocr",
            context="Local OCR label matching",
        )

    def detect(self, image_bytes: bytes, ocr_supplier: OCRSupplier) -> DetectionResult:
        """Detect fields; the whole-image strategy is resolved by the caller after the distance policy.

        `ocr_supplier` is only called when OCR tokens are needed here (local
        fallback or pack-size scan); callers memoise it so OCR runs once.

        Raises:
            NoFieldsFoundError: neither the model nor any fallback found a field.
        """
        try:
            result = self._ask_model(image_bytes)
        except (ServiceUnavailableError, ForbiddenError) as e:
            logger.warning(f"Vision model unavailable, falling back to local OCR matching: {e}")
            result = self._local_fallback(ocr_supplier)

        fields: List[DetectedField] = list(result.fields)
        if not any(f.field_type == "pack_size" for f in fields):
            standalone = find_standalone_pack_sizes(ocr_supplier().tokens)
            if standalone:
                logger.info(f"Standalone pack size found: {standalone[0].complete_text!r}")
                fields.extend(standalone)

        if not fields:
            raise NoFieldsFoundError(
                "No standard fields found in the image",
                details={"detectionMethod": result.method},
            )

        logger.success(f"Detected {len(fields)} fields via {result.method}")
        return result.model_copy(update={"found": True, "fields": fields})
