"""
Locating text inside a list of OCR tokens.

OCR splits one printed value into several tokens ("₹", "95", "00") and drops or
invents separators, so matching happens on `compact()` text: case-folded with
whitespace and separator punctuation removed. A run is a chain of consecutive
tokens (Vision reports tokens in reading order) where each token sits next to
the previous one on the page.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ...geometry import Box, axis_gaps, bounding_box, box_height, vertical_overlap
from ...normalizers import compact
from ..models import OCRToken

CURRENCY_MARKS = {"₹", "rs", "inr", "$", "€", "£"}


def in_reading_order(tokens: Iterable[OCRToken]) -> List[OCRToken]:
    return sorted(tokens, key=lambda t: t.id)


def tokens_box(tokens: Iterable[OCRToken]) -> Box:
    return bounding_box(pt for t in tokens for pt in t.coordinates)


def are_neighbours(a: OCRToken, b: OCRToken, gap_ratio: float = 1.5) -> bool:
    """True when `b` continues `a` on the page: same line or the line directly below."""
    ba, bb = a.box, b.box
    h = max(1.0, min(box_height(ba), box_height(bb)))
    dx, dy = axis_gaps(ba, bb)
    if vertical_overlap(ba, bb) >= 0.5:
        return dx <= gap_ratio * h
    return dy <= gap_ratio * h and dx <= gap_ratio * h


def same_line_neighbours(a: OCRToken, b: OCRToken, gap_ratio: float = 1.0) -> bool:
    ba, bb = a.box, b.box
    h = max(1.0, min(box_height(ba), box_height(bb)))
    dx, _ = axis_gaps(ba, bb)
    return vertical_overlap(ba, bb) >= 0.5 and dx <= gap_ratio * h


def is_value_like(text: str) -> bool:
    c = compact(text)
    return any(ch.isdigit() for ch in c) or c in CURRENCY_MARKS


def is_separator(text: str) -> bool:
    return compact(text) == ""


def _could_reach(goal: str, joined: str, first_len: int) -> bool:
    # some suffix of `joined` that starts inside the first token is a prefix of `goal`
    return any(goal.startswith(joined[k:]) for k in range(min(first_len, len(joined))))


def find_token_run(
    target: str,
    tokens: Sequence[OCRToken],
    max_window: int = 8,
    gap_ratio: float = 1.5,
) -> Optional[List[OCRToken]]:
    """Smallest run of neighbouring tokens whose compacted text contains `target`.

    The run must be minimal at both ends: dropping its first or last token loses
    the match. Among several runs the one with the fewest extra characters wins,
    then the earliest.
    """
    goal = compact(target)
    if not goal:
        return None
    ordered = in_reading_order(tokens)
    best: Optional[List[OCRToken]] = None
    best_extra = 0

    for i, start in enumerate(ordered):
        first = compact(start.text)
        if not first:
            continue
        run: List[OCRToken] = []
        joined = ""
        for tok in ordered[i : i + max_window]:
            if run and not are_neighbours(run[-1], tok, gap_ratio):
                break
            run.append(tok)
            joined += compact(tok.text)
            if goal in joined:
                if goal not in joined[len(first):]:
                    extra = len(joined) - len(goal)
                    if best is None or extra < best_extra:
                        best, best_extra = list(run), extra
                break
            if not _could_reach(goal, joined, len(first)):
                break
    return best
