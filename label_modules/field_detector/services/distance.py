"""
Label/value distance classification.

With `DISTANCE_POLICY=model` the model's own `low`/`high` judgement is kept.
With `geometric` every labelled field is re-classified from OCR geometry: the
axis-aligned gap between the label and value token groups is compared with
`gap_ratio` times the smaller of the two text heights.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ...config.fields import field_spec
from ...geometry import Box, axis_gaps, box_height
from ...ocr.models import OCRToken
from ...ocr.services.matching import find_token_run, tokens_box
from ..models import DetectedField
from utils import logger


def classify_gap(label_box: Box, value_box: Box, gap_ratio: float = 1.0) -> Tuple[str, str]:
    dx, dy = axis_gaps(label_box, value_box)
    gap = max(dx, dy)
    text_height = max(1.0, min(box_height(label_box), box_height(value_box)))
    threshold = gap_ratio * text_height
    if gap <= threshold:
        return "low", f"gap {gap:.0f}px within {threshold:.0f}px of text height"
    return "high", f"gap {gap:.0f}px exceeds {threshold:.0f}px of text height"


def apply_geometric_policy(
    fields: Sequence[DetectedField], tokens: Sequence[OCRToken], gap_ratio: float = 1.0
) -> List[DetectedField]:
    out: List[DetectedField] = []
    for f in fields:
        if f.distance == "standalone" or field_spec(f.field_type).is_marker or not (f.field_part and f.value_part):
            out.append(f)
            continue
        label_run = find_token_run(f.field_part, tokens)
        value_run = find_token_run(f.value_part, tokens)
        if not label_run or not value_run:
            logger.debug(f"Keeping model distance for {f.field_type}: tokens not located")
            out.append(f)
            continue
        if {t.id for t in label_run} & {t.id for t in value_run}:
            distance, reason = "low", "label and value share one OCR token"
        else:
            distance, reason = classify_gap(tokens_box(label_run), tokens_box(value_run), gap_ratio)
        if distance != f.distance:
            logger.info(f"Distance for {f.field_type} re-classified {f.distance} -> {distance} ({reason})")
        out.append(f.model_copy(update={"distance": distance, "distance_reason": reason}))
    return out
