from .models import DetectedField, DetectionResult, UnifiedStrategy
from .services import FieldDetector, LocalFieldDetector, plan_masking, resolve_unified_strategy

__all__ = [
    "DetectedField",
    "DetectionResult",
    "UnifiedStrategy",
    "FieldDetector",
    "LocalFieldDetector",
    "plan_masking",
    "resolve_unified_strategy",
]
