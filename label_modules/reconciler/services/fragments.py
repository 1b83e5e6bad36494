"""
Fragment completion for token selections.

OCR splits one printed value into pieces ("₹" "95" "00", or "03" "/" "2024").
A selection that covers only some of them is grown over same-line neighbours
for as long as the grown text is still part of the text to mask.
"""

from __future__ import annotations

from typing import List, Sequence

from ...normalizers import compact
from ...ocr.models import OCRToken
from ...ocr.services.matching import find_token_run, in_reading_order, same_line_neighbours


def _joined(tokens: Sequence[OCRToken]) -> str:
    return "".join(compact(t.text) for t in tokens)


def complete_fragments(
    selected: Sequence[OCRToken],
    tokens: Sequence[OCRToken],
    target: str,
    gap_ratio: float = 1.5,
) -> List[OCRToken]:
    goal = compact(target)
    run = in_reading_order(selected)
    if not goal or not run or goal in _joined(run):
        return run

    located = find_token_run(target, tokens)
    if located and {t.id for t in located} & {t.id for t in run}:
        merged = {t.id: t for t in [*run, *located]}
        return in_reading_order(merged.values())

    if _joined(run) not in goal:
        # the selection is not a piece of the target; leave it as chosen
        return run

    ordered = in_reading_order(tokens)
    pos = {t.id: k for k, t in enumerate(ordered)}
    lo, hi = pos[run[0].id], pos[run[-1].id]
    grown = True
    while grown and goal not in _joined(run):
        grown = False
        if hi + 1 < len(ordered):
            nxt = ordered[hi + 1]
            if same_line_neighbours(run[-1], nxt, gap_ratio) and _joined(run) + compact(nxt.text) in goal:
                run.append(nxt)
                hi += 1
                grown = True
        if lo > 0:
            prev = ordered[lo - 1]
            if same_line_neighbours(prev, run[0], gap_ratio) and compact(prev.text) + _joined(run) in goal:
                run.insert(0, prev)
                lo -= 1
                grown = True
    return run
