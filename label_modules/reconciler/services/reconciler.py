"""
OCRReconciler - decides exactly which OCR tokens to mask for each field.
"""

from __future__ import annotations

from typing import Sequence

from ...errors import ForbiddenError, ReconciliationFailedError, ServiceUnavailableError
from ...field_detector.models import DetectedField, UnifiedStrategy
from ...llm.services.client import VisionLLMClient
from ...ocr.models import OCRToken
from ..models import ReconciliationResult
from .fallback import select_locally
from .selection import enrich_selections, request_selection
from utils import logger


class OCRReconciler:
    def __init__(self, llm: VisionLLMClient):
        self.llm = llm

    def reconcile(
        self,
        image_bytes: bytes,
        tokens: Sequence[OCRToken],
        fields: Sequence[DetectedField],
        strategy: UnifiedStrategy,
    ) -> ReconciliationResult:
        """Select tokens per field: model selection first, local matching when that yields nothing.

        Raises:
            ReconciliationFailedError: no token could be matched to any field.
        """
        if not tokens:
            raise ReconciliationFailedError("OCR found no text to match against the detected fields")

        selected = []
        try:
            selections = request_selection(self.llm, image_bytes, tokens, fields, strategy)
            if selections is None:
                logger.warning("OCR selection reply was not usable JSON")
            else:
                selected = enrich_selections(selections, tokens, fields)
        except (ServiceUnavailableError, ForbiddenError) as e:
            logger.warning(f"OCR selection call failed: {e}")

        method = "model_selection"
        if not selected:
            logger.info("Falling back to local OCR text matching")
            selected = select_locally(tokens, fields)
            method = "local_fallback"

        if not selected:
            raise ReconciliationFailedError(
                "No OCR text could be matched to any detected field",
                details={"detectedFields": len(fields), "ocrTokens": len(tokens)},
            )

        total = len({i for s in selected for i in s.selected_ocr_ids})
        logger.success(f"Selected {total} OCR texts for {len(selected)} fields via {method}")
        return ReconciliationResult(
            success=True,
            selected_fields=selected,
            total_selected_texts=total,
            method=method,
            confidence="high" if method == "model_selection" else "low",
        )
