"""
Catalogue of the regulated label fields the detector looks for.

Label variants are matched case-insensitively after `normalizers.compact`, so
"MFG.DT" and "Mfg Dt" are the same variant. Keep each list ordered from the most
to the least specific variant; the local matcher tries the longest compacted
variant first anyway.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class FieldSpec:
    field_type: str
    display_name: str
    variations: Tuple[str, ...]
    hindi_variations: Tuple[str, ...] = ()
    # a marker has no value part; the label text itself is what gets masked
    is_marker: bool = False
    value_hint: str = ""

    @property
    def all_variations(self) -> Tuple[str, ...]:
        return self.variations + self.hindi_variations


STANDARD_FIELDS: List[FieldSpec] = [
    FieldSpec(
        field_type="manufacturing_date",
        display_name="MANUFACTURING DATE",
        variations=(
            "MFG DATE", "MFG DT", "MFG.DATE", "MFG.DT", "MFGDATE", "MANUFACTURING DATE",
            "MANUFACTURE DATE", "MANUFACTURED ON", "DATE OF MFG", "DATE OF MANUFACTURE",
            "MFD", "MFG", "PROD DATE", "PRODUCTION DATE", "PKD", "PACKED ON",
        ),
        hindi_variations=("निर्माण तिथि", "निर्माण दिनांक", "निर्माण की तिथि", "नि. ति."),
        value_hint="a month/year or full date such as 03/2024 or MAR 2024",
    ),
    FieldSpec(
        field_type="expiry_date",
        display_name="EXPIRY DATE",
        variations=(
            "EXP DATE", "EXP DT", "EXP.DATE", "EXP.DT", "EXPDATE", "EXPIRY DATE",
            "EXPIRE DATE", "EXPIRES ON", "EXP", "BEST BEFORE", "USE BY", "VALID UNTIL",
        ),
        hindi_variations=("समाप्ति तिथि", "अंतिम तिथि", "एक्सपायरी तिथि", "उपयोग की अंतिम तिथि"),
        value_hint="a month/year or full date such as 02/2026",
    ),
    FieldSpec(
        field_type="batch_number",
        display_name="BATCH NUMBER",
        variations=(
            "BATCH NO", "BATCH NO.", "BATCH NUMBER", "B.NO", "B.NO.", "BNO", "BATCH",
            "LOT NO", "LOT NO.", "LOT NUMBER", "LOT", "BATCH CODE", "LOT CODE",
        ),
        hindi_variations=("बैच नं", "बैच नंबर", "बैच संख्या", "लॉट नं"),
        value_hint="an alphanumeric code such as S24K016",
    ),
    FieldSpec(
        field_type="mrp",
        display_name="MRP",
        variations=(
            "MRP", "M.R.P", "M.R.P.", "MAX RETAIL PRICE", "MAXIMUM RETAIL PRICE",
            "RETAIL PRICE", "PRICE", "COST", "RATE",
        ),
        hindi_variations=("अधिकतम खुदरा मूल्य", "अधिकतम खुदरा कीमत", "एम.आर.पी.", "मूल्य"),
        value_hint="a price such as ₹95.00 or Rs. 95",
    ),
    FieldSpec(
        field_type="pack_size",
        display_name="PACK SIZE",
        variations=(
            "PACK SIZE", "PACK OF", "NET QTY", "NET QUANTITY", "NET CONTENT", "NET CONTENTS",
            "NET WT", "NET WEIGHT", "QTY", "CONTENTS",
        ),
        hindi_variations=("शुद्ध मात्रा", "मात्रा", "कुल मात्रा", "शुद्ध वजन"),
        value_hint="a quantity with a unit such as 10 tablets, 100 ml or per 10 tablets",
    ),
    FieldSpec(
        field_type="inclusive_of_taxes",
        display_name="INCLUSIVE OF ALL TAXES",
        variations=(
            "INCLUSIVE OF ALL TAXES", "INCL. OF ALL TAXES", "INCL OF ALL TAXES",
            "INCLUSIVE OF TAXES", "INCL. OF TAXES", "INCL. ALL TAXES", "INCL ALL TAXES",
        ),
        hindi_variations=("सभी करों सहित", "सभी कर सहित", "करों सहित"),
        is_marker=True,
    ),
]

_BY_TYPE: Dict[str, FieldSpec] = {spec.field_type: spec for spec in STANDARD_FIELDS}

FIELD_TYPES: Tuple[str, ...] = tuple(spec.field_type for spec in STANDARD_FIELDS)

MASKING_STRATEGIES: Tuple[str, ...] = (
    "both",
    "unified_all_fields_and_values",
    "value_only",
    "values_only",
    "always_include_pack_size",
)

# quantity + unit; "mg" is a strength, not a pack size
PACK_SIZE_UNITS = (
    r"tablets?|tabs?|capsules?|caps?|softgels?|sachets?|strips?|pcs|pieces?|units?|"
    r"ml|ltr|litres?|liters?|l|gms?|g|kg|n"
)
PACK_SIZE_VALUE_RX = re.compile(
    rf"^(?:(?:per|pack\s+of|x)\s+)?\d+(?:\.\d+)?\s*(?:{PACK_SIZE_UNITS})$",
    re.IGNORECASE,
)

# BGR palette for highlight overlays (red, green, blue, yellow), alpha 0.4
HIGHLIGHT_PALETTE: Tuple[Tuple[int, int, int], ...] = (
    (0, 0, 255),
    (0, 255, 0),
    (255, 0, 0),
    (0, 255, 255),
)
HIGHLIGHT_ALPHA = 0.4


def field_spec(field_type: str) -> FieldSpec:
    try:
        return _BY_TYPE[field_type]
    except KeyError:
        raise KeyError(f"Unknown field type '{field_type}'") from None


def describe_fields_for_prompt() -> str:
    lines = []
    for i, spec in enumerate(STANDARD_FIELDS, start=1):
        english = ", ".join(spec.variations)
        hindi = ", ".join(spec.hindi_variations)
        line = f"{i}. {spec.display_name} [{spec.field_type}] (English: {english}; Hindi: {hindi})"
        if spec.value_hint:
            line += f" - value is {spec.value_hint}"
        if spec.is_marker:
            line += " - this is a marker with no separate value"
        lines.append(line)
    return "\n".join(lines)
