"""
Whole-image masking strategy.

The strategy is decided once per image from the per-field distances and then
applied to every field:

- any labelled field with `low` distance -> mask every label and value, the
  pack-size value and the inclusive-of-taxes marker;
- otherwise -> mask values only plus the pack-size value, and drop the marker.

Pack-size values are masked under either strategy.
"""

from __future__ import annotations

from typing import Iterable, List

from ...config.fields import field_spec
from ..models import DetectedField, UnifiedStrategy


def counts_for_strategy(f: DetectedField) -> bool:
    """Standalone values and value-less markers have no label/value distance."""
    return f.distance != "standalone" and not field_spec(f.field_type).is_marker


def resolve_unified_strategy(fields: Iterable[DetectedField]) -> UnifiedStrategy:
    if any(f.distance == "low" for f in fields if counts_for_strategy(f)):
        return UnifiedStrategy.ALL_FIELDS_AND_VALUES
    return UnifiedStrategy.VALUES_ONLY


def plan_masking(fields: Iterable[DetectedField], strategy: UnifiedStrategy) -> List[DetectedField]:
    """Return the fields to mask, each with `text_to_mask` and `masking_strategy` set."""
    planned: List[DetectedField] = []
    for f in fields:
        spec = field_spec(f.field_type)
        if f.field_type == "pack_size":
            if strategy is UnifiedStrategy.ALL_FIELDS_AND_VALUES and f.field_part and f.distance != "standalone":
                text = f.complete_text
            else:
                text = f.value_part or f.complete_text
            masking = "always_include_pack_size"
        elif spec.is_marker:
            if strategy is UnifiedStrategy.VALUES_ONLY:
                continue
            text = f.complete_text
            masking = strategy.value
        elif strategy is UnifiedStrategy.ALL_FIELDS_AND_VALUES:
            text = f.complete_text
            masking = strategy.value
        else:
            text = f.value_part or f.complete_text
            masking = strategy.value
        planned.append(f.model_copy(update={"text_to_mask": text, "masking_strategy": masking}))
    return planned
