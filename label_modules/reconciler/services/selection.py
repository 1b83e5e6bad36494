"""
Model-driven OCR token selection and its enrichment into `SelectedField`s.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ...config.prompts import OCR_SELECTION_PROMPT, render
from ...field_detector.models import DetectedField, UnifiedStrategy
from ...llm.services.client import VisionLLMClient
from ...llm.services.json_reply import decode_json_object
from ...ocr.models import OCRToken
from ..models import SelectedField
from .fragments import complete_fragments
from utils import logger


def describe_tokens(tokens: Sequence[OCRToken]) -> List[Dict[str, Any]]:
    out = []
    for t in tokens:
        x1, y1, x2, y2 = t.box
        out.append({"id": t.id, "text": t.text, "box": [round(x1), round(y1), round(x2 - x1), round(y2 - y1)]})
    return out


def describe_fields(fields: Sequence[DetectedField]) -> List[Dict[str, Any]]:
    return [
        {
            "fieldIndex": i,
            "fieldType": f.field_type,
            "completeText": f.complete_text,
            "textToMask": f.text_to_mask or f.complete_text,
            "maskingStrategy": f.masking_strategy,
        }
        for i, f in enumerate(fields)
    ]


def request_selection(
    llm: VisionLLMClient,
    image_bytes: bytes,
    tokens: Sequence[OCRToken],
    fields: Sequence[DetectedField],
    strategy: UnifiedStrategy,
) -> Optional[List[Dict[str, Any]]]:
    """Ask the model which token ids make up each field; None when the reply is unusable."""
    prompt = render(
        OCR_SELECTION_PROMPT,
        strategy=strategy.value,
        fields=describe_fields(fields),
        tokens=describe_tokens(tokens),
    )
    reply = llm.generate(prompt, image_bytes, purpose="OCR selection")
    logger.debug(f"OCR selection reply: {reply[:2000]}")
    obj = decode_json_object(reply)
    if obj is None or not obj.get("success", True):
        return None
    selections = obj.get("selectedFields")
    if not isinstance(selections, list):
        return None
    return [s for s in selections if isinstance(s, dict)]


def _coerce_ids(raw: Any) -> List[int]:
    ids = []
    for v in raw if isinstance(raw, list) else []:
        try:
            ids.append(int(v))
        except (TypeError, ValueError):
            continue
    return ids


def _field_for(selection: Dict[str, Any], fields: Sequence[DetectedField], taken: set) -> Optional[int]:
    idx = selection.get("fieldIndex")
    if isinstance(idx, int) and 0 <= idx < len(fields) and idx not in taken:
        return idx
    ftype = str(selection.get("fieldType") or "").lower()
    for i, f in enumerate(fields):
        if i not in taken and f.field_type == ftype:
            return i
    return None


def enrich_selections(
    selections: Sequence[Dict[str, Any]],
    tokens: Sequence[OCRToken],
    fields: Sequence[DetectedField],
) -> List[SelectedField]:
    """Resolve ids to tokens, dropping unknown ids, and complete fragmented values."""
    by_id = {t.id: t for t in tokens}
    taken: set = set()
    out: List[SelectedField] = []

    for sel in selections:
        i = _field_for(sel, fields, taken)
        if i is None:
            logger.warning(f"Selection for unknown field {sel.get('fieldType')!r} ignored")
            continue
        ids = _coerce_ids(sel.get("selectedOCRIds"))
        dropped = [x for x in ids if x not in by_id]
        if dropped:
            logger.warning(f"Dropping OCR ids not present in this image: {dropped}")
        chosen = [by_id[x] for x in ids if x in by_id]
        if not chosen:
            continue

        f = fields[i]
        target = f.text_to_mask or f.complete_text
        completed = complete_fragments(chosen, tokens, target)
        if len(completed) > len(chosen):
            logger.info(f"Completed fragmented {f.field_type}: {len(chosen)} -> {len(completed)} tokens")
        taken.add(i)
        out.append(
            SelectedField.from_tokens(
                completed,
                field_type=f.field_type,
                field_name=f.field_name,
                complete_text=f.complete_text,
                text_to_mask=target,
                masking_strategy=f.masking_strategy,
                reasoning=str(sel.get("reasoning") or ""),
                confidence=f.confidence,
            )
        )
    return out
