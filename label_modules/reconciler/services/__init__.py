from .fallback import select_locally, word_overlap_tokens
from .fragments import complete_fragments
from .reconciler import OCRReconciler
from .selection import enrich_selections, request_selection

__all__ = [
    "OCRReconciler",
    "complete_fragments",
    "enrich_selections",
    "request_selection",
    "select_locally",
    "word_overlap_tokens",
]
