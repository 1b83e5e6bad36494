"""
Deterministic field detection over OCR tokens.

Used when the vision model cannot be reached: every label variant (English and
Hindi) is matched against runs of OCR tokens, and the value is either the rest
of the label's own token ("MFG.Dt.03/2024") or the nearest value-like token
within a fixed radius of the label. Also hosts the standalone pack-size scan
("per 10 tablets" with no label).
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set, Tuple

from ...config.fields import PACK_SIZE_VALUE_RX, STANDARD_FIELDS, FieldSpec
from ...geometry import box_gap, vertical_overlap
from ...normalizers import compact, normalize_whitespace
from ...ocr.models import OCRToken
from ...ocr.services.matching import (
    are_neighbours,
    in_reading_order,
    is_separator,
    is_value_like,
    same_line_neighbours,
    tokens_box,
)
from ..models import DetectedField
from .distance import classify_gap
from utils import logger

LabelMatch = Tuple[str, List[OCRToken], str]  # (variation, label tokens, inline value text)


def _split_after(raw: str, n_compact: int) -> str:
    """Raw text of `raw` after its first `n_compact` compacted characters."""
    seen = 0
    for idx, ch in enumerate(raw):
        if seen >= n_compact:
            return raw[idx:].lstrip(":-.;/ ").strip()
        if compact(ch):
            seen += 1
    return ""


class LocalFieldDetector:
    def __init__(self, proximity_px: float = 100.0, gap_ratio: float = 1.0, max_label_tokens: int = 6):
        self.proximity_px = proximity_px
        self.gap_ratio = gap_ratio
        self.max_label_tokens = max_label_tokens

    # ---------- label matching ----------
    def _match_label_at(
        self, spec: FieldSpec, ordered: Sequence[OCRToken], i: int
    ) -> Optional[LabelMatch]:
        by_compact: Dict[str, str] = {}
        for v in spec.all_variations:
            if compact(v):
                by_compact.setdefault(compact(v), v)
        variants = sorted(by_compact.items(), key=lambda cv: len(cv[0]), reverse=True)
        run: List[OCRToken] = []
        joined = ""
        best: Optional[LabelMatch] = None
        for tok in ordered[i : i + self.max_label_tokens]:
            if run and not are_neighbours(run[-1], tok):
                break
            before_last = len(joined)
            run.append(tok)
            joined += compact(tok.text)
            for cv, variation in variants:
                if not joined.startswith(cv) or before_last >= len(cv):
                    continue
                remainder = joined[len(cv):]
                # "EXPORT" is not "EXP" + value; letters with no digit continue a word
                if remainder and remainder[0].isalpha() and not any(c.isdigit() for c in remainder):
                    continue
                inline = _split_after(tok.text, len(cv) - before_last) if remainder else ""
                if best is None or len(cv) > len(compact(best[0])):
                    best = (variation, list(run), inline)
                break
            if not any(cv.startswith(joined) or joined.startswith(cv) for cv, _ in variants):
                break
        return best

    def _find_label(
        self, spec: FieldSpec, ordered: Sequence[OCRToken], used: Set[int]
    ) -> Optional[LabelMatch]:
        for i, tok in enumerate(ordered):
            if tok.id in used or not compact(tok.text):
                continue
            match = self._match_label_at(spec, ordered, i)
            if match and not any(t.id in used for t in match[1]):
                return match
        return None

    # ---------- value association ----------
    def _nearest_value(
        self, label: List[OCRToken], ordered: Sequence[OCRToken], used: Set[int]
    ) -> Optional[OCRToken]:
        label_ids = {t.id for t in label}
        lbox = tokens_box(label)
        best: Optional[Tuple[Tuple[int, float], OCRToken]] = None
        for tok in ordered:
            if tok.id in label_ids or tok.id in used or not is_value_like(tok.text):
                continue
            tbox = tok.box
            gap = box_gap(lbox, tbox)
            if gap > self.proximity_px:
                continue
            right_of = vertical_overlap(lbox, tbox) >= 0.5 and tbox[0] >= lbox[2] - 1
            below = tbox[1] >= lbox[3] - 1
            if not (right_of or below):
                continue
            key = (0 if right_of else 1, gap)
            if best is None or key < best[0]:
                best = (key, tok)
        return best[1] if best else None

    def _grow_value(self, start: OCRToken, ordered: Sequence[OCRToken], blocked: Set[int]) -> List[OCRToken]:
        """Extend a value token over same-line neighbours that are fragments of it ("₹", "95", "00")."""
        pos = {t.id: k for k, t in enumerate(ordered)}
        run = [start]
        k = pos[start.id] - 1
        while k >= 0:
            prev = ordered[k]
            if prev.id in blocked or not (is_value_like(prev.text) or is_separator(prev.text)):
                break
            if not same_line_neighbours(prev, run[0], self.gap_ratio):
                break
            run.insert(0, prev)
            k -= 1
        k = pos[start.id] + 1
        while k < len(ordered):
            nxt = ordered[k]
            if nxt.id in blocked or not (is_value_like(nxt.text) or is_separator(nxt.text)):
                break
            if not same_line_neighbours(run[-1], nxt, self.gap_ratio):
                break
            run.append(nxt)
            k += 1
        while run and is_separator(run[0].text):
            run.pop(0)
        while run and is_separator(run[-1].text):
            run.pop()
        return run

    # ---------- public ----------
    def detect(self, tokens: Sequence[OCRToken]) -> List[DetectedField]:
        ordered = in_reading_order(tokens)
        used: Set[int] = set()
        fields: List[DetectedField] = []

        for spec in STANDARD_FIELDS:
            match = self._find_label(spec, ordered, used)
            if match is None:
                continue
            variation, label, inline = match
            label_text = " ".join(t.text for t in label)
            label_ids = {t.id for t in label}

            if spec.is_marker:
                used |= label_ids
                fields.append(
                    DetectedField(
                        field_type=spec.field_type,
                        field_name=variation,
                        complete_text=label_text,
                        field_part=label_text,
                        distance="standalone",
                        distance_reason="marker without a value",
                        confidence="medium",
                        source="local_ocr",
                    )
                )
                continue

            if inline:
                used |= label_ids
                fields.append(
                    DetectedField(
                        field_type=spec.field_type,
                        field_name=variation,
                        complete_text=label_text,
                        field_part=variation,
                        value_part=inline,
                        distance="low",
                        distance_reason="label and value share one OCR token",
                        confidence="medium",
                        source="local_ocr",
                    )
                )
                continue

            start = self._nearest_value(label, ordered, used)
            if start is None:
                logger.debug(f"Label '{label_text}' has no value within {self.proximity_px:.0f}px")
                continue
            value = self._grow_value(start, ordered, used | label_ids)
            value_text = " ".join(t.text for t in value)
            distance, reason = classify_gap(tokens_box(label), tokens_box(value), self.gap_ratio)
            used |= label_ids | {t.id for t in value}
            fields.append(
                DetectedField(
                    field_type=spec.field_type,
                    field_name=variation,
                    complete_text=f"{label_text} {value_text}",
                    field_part=label_text,
                    value_part=value_text,
                    distance=distance,
                    distance_reason=reason,
                    confidence="medium",
                    source="local_ocr",
                )
            )

        logger.info(f"Local OCR detector found {len(fields)} fields")
        return fields


def find_standalone_pack_sizes(tokens: Sequence[OCRToken], max_window: int = 4) -> List[DetectedField]:
    """Quantity + unit runs ("per 10 tablets", "100 ml") printed without a label."""
    ordered = in_reading_order(tokens)
    found: List[DetectedField] = []
    consumed: Set[int] = set()
    for i, start in enumerate(ordered):
        if start.id in consumed:
            continue
        run: List[OCRToken] = []
        best: Optional[List[OCRToken]] = None
        for tok in ordered[i : i + max_window]:
            if run and not same_line_neighbours(run[-1], tok, 1.5):
                break
            run.append(tok)
            text = normalize_whitespace(" ".join(t.text for t in run))
            if PACK_SIZE_VALUE_RX.match(text):
                best = list(run)
        if best is None:
            continue
        consumed |= {t.id for t in best}
        text = normalize_whitespace(" ".join(t.text for t in best))
        found.append(
            DetectedField(
                field_type="pack_size",
                field_name="",
                complete_text=text,
                value_part=text,
                distance="standalone",
                distance_reason="quantity printed without a label",
                masking_strategy="always_include_pack_size",
                text_to_mask=text,
                confidence="medium",
                source="pack_size_scan",
            )
        )
    return found
