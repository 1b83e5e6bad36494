from .detector import FieldDetector
from .distance import apply_geometric_policy, classify_gap
from .local_detector import LocalFieldDetector, find_standalone_pack_sizes
from .parsing import extract_fields_from_text, parse_detection_reply
from .strategy import plan_masking, resolve_unified_strategy

__all__ = [
    "FieldDetector",
    "LocalFieldDetector",
    "find_standalone_pack_sizes",
    "apply_geometric_policy",
    "classify_gap",
    "parse_detection_reply",
    "extract_fields_from_text",
    "plan_masking",
    "resolve_unified_strategy",
]
