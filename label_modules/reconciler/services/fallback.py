"""
Local token selection used when model selection fails or selects nothing.

Each field is first located as a contiguous run of neighbouring tokens; when
that fails, tokens sharing a word with the text to mask are taken.
"""

from __future__ import annotations

from typing import List, Sequence

from ...field_detector.models import DetectedField
from ...normalizers import compact, words
from ...ocr.models import OCRToken
from ...ocr.services.matching import find_token_run
from ..models import SelectedField
from utils import logger


def word_overlap_tokens(target: str, tokens: Sequence[OCRToken]) -> List[OCRToken]:
    goal = compact(target)
    target_words = {compact(w) for w in words(target)} - {""}
    hits = []
    for t in tokens:
        c = compact(t.text)
        if not c:
            continue
        if c in target_words or (len(c) >= 2 and c in goal) or any(len(w) >= 3 and w in c for w in target_words):
            hits.append(t)
    return hits


def select_locally(tokens: Sequence[OCRToken], fields: Sequence[DetectedField]) -> List[SelectedField]:
    out: List[SelectedField] = []
    for f in fields:
        target = f.text_to_mask or f.complete_text
        run = find_token_run(target, tokens)
        reasoning = "contiguous token run matches the text to mask"
        if not run:
            run = word_overlap_tokens(target, tokens)
            reasoning = "tokens share words with the text to mask"
        if not run:
            logger.warning(f"No OCR tokens matched {f.field_type} '{target}'")
            continue
        out.append(
            SelectedField.from_tokens(
                run,
                field_type=f.field_type,
                field_name=f.field_name,
                complete_text=f.complete_text,
                text_to_mask=target,
                masking_strategy=f.masking_strategy,
                reasoning=reasoning,
                confidence="low",
            )
        )
    return out
