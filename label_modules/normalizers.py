from __future__ import annotations
import re

# punctuation OCR tends to drop, split on, or hallucinate between fragments
_SEPARATORS = r"[\s\.\,\:\;\/\\\-\_\(\)\[\]\|\'\"\*\#]+"
_SEPARATORS_RX = re.compile(_SEPARATORS)


def normalize_whitespace(s: str) -> str:
    return re.sub(r"\s+", " ", s or "").strip()


def compact(s: str) -> str:
    """Case-folded text with whitespace and separator punctuation removed.

    "MRP: ₹95.00" -> "mrp₹9500"; Devanagari and currency symbols survive.
    """
    return _SEPARATORS_RX.sub("", (s or "").lower())


def words(s: str) -> list:
    return [w for w in normalize_whitespace(s).lower().split(" ") if w]
