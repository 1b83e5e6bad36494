"""
Decoding the vision model's field-detection reply.

`parse_detection_reply` returns None when the reply cannot be used (no JSON,
or `found=true` with no valid entries); a parsed `found=false` comes back as a
`model_declined` result. `extract_fields_from_text` is the second tier for
unusable replies: it scans the raw text line by line for label variants.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ...config.fields import STANDARD_FIELDS, FieldSpec
from ...llm.services.json_reply import decode_json_object
from ..models import DetectedField, DetectionResult
from utils import logger

_CONFIDENCE = {"high", "medium", "low"}
_FALSE_WORDS = {"false", "no", "0", "none", "null", ""}


def _confidence(value: Any, default: str = "medium") -> str:
    v = str(value or "").strip().lower()
    return v if v in _CONFIDENCE else default


def _truthy(value: Any) -> bool:
    # models sometimes quote booleans: "false", "False"
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


def parse_detection_reply(text: Optional[str]) -> Optional[DetectionResult]:
    obj = decode_json_object(text)
    if obj is None:
        return None

    found = _truthy(obj.get("found"))
    entries = obj.get("autoDetectedFields") or obj.get("fields") or []
    if not found:
        return DetectionResult(found=False, method="model_declined", context=obj.get("context"))

    fields: List[DetectedField] = []
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            continue
        try:
            fields.append(DetectedField.model_validate({**entry, "source": "model"}))
        except PydanticValidationError as e:
            logger.warning(f"Skipping unreadable field entry {entry.get('fieldType')!r}: {e.error_count()} errors")
    if not fields:
        return None

    return DetectionResult(
        found=True,
        fields=fields,
        confidence=_confidence(obj.get("detectionConfidence") or obj.get("confidence")),
        method="model",
        reported_strategy=obj.get("unifiedStrategy"),
        context=obj.get("context"),
    )


def _variation_pattern(variation: str) -> re.Pattern:
    return re.compile(rf"{re.escape(variation)}\s*[:\-]?\s*[^\n]*", re.IGNORECASE)


def _match_line(spec: FieldSpec, line: str) -> Optional[Dict[str, str]]:
    upper_line = line.upper()
    for variation in spec.all_variations:
        if variation.upper() not in upper_line:
            continue
        m = _variation_pattern(variation).search(line)
        if not m:
            continue
        complete = m.group(0).strip().strip('",').strip()
        label = complete[: len(variation)]
        value = complete[len(variation):].lstrip(":-. ").strip()
        if value or spec.is_marker:
            return {"fieldName": label, "completeText": complete, "fieldPart": label, "valuePart": value}
    return None


def extract_fields_from_text(text: str) -> DetectionResult:
    """Regex-per-label-variant scan over the reply's lines; one field per type at most."""
    logger.info("Using fallback method to extract standard fields from text...")
    lines = (text or "").split("\n")
    fields: List[DetectedField] = []

    for spec in STANDARD_FIELDS:
        for line in lines:
            hit = _match_line(spec, line)
            if hit is None:
                continue
            fields.append(
                DetectedField(
                    field_type=spec.field_type,
                    field_name=hit["fieldName"],
                    complete_text=hit["completeText"],
                    field_part=hit["fieldPart"],
                    value_part=hit["valuePart"],
                    distance="standalone" if spec.is_marker else "low",
                    distance_reason="distance not reported; assuming adjacent label and value",
                    confidence="medium",
                    context="Extracted from text response",
                    source="text_extraction",
                )
            )
            break

    n = len(fields)
    return DetectionResult(
        found=n > 0,
        fields=fields,
        confidence="high" if n > 2 else "medium" if n > 0 else "low",
        method="text_extraction",
        context="Fallback extraction from text response",
    )
