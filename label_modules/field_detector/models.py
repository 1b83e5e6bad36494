from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FieldType = Literal[
    "manufacturing_date",
    "expiry_date",
    "batch_number",
    "mrp",
    "pack_size",
    "inclusive_of_taxes",
]
Distance = Literal["low", "high", "standalone"]
MaskingStrategy = Literal[
    "both",
    "unified_all_fields_and_values",
    "value_only",
    "values_only",
    "always_include_pack_size",
]
Confidence = Literal["high", "medium", "low"]
DetectionMethod = Literal["model", "model_declined", "text_extraction", "local_ocr"]


class UnifiedStrategy(str, Enum):
    """Whole-image masking decision derived from per-field distances."""

    ALL_FIELDS_AND_VALUES = "unified_all_fields_and_values"
    VALUES_ONLY = "values_only"


class DetectedField(BaseModel):
    """One candidate regulated-field instance found on the packaging."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field_type: FieldType = Field(alias="fieldType")
    field_name: str = Field(default="", alias="fieldName")
    complete_text: str = Field(alias="completeText")
    field_part: str = Field(default="", alias="fieldPart")
    value_part: str = Field(default="", alias="valuePart")
    hindi_text: Optional[str] = Field(default=None, alias="hindiText")
    distance: Distance = "low"
    distance_reason: str = Field(default="", alias="distanceReason")
    masking_strategy: MaskingStrategy = Field(default="both", alias="maskingStrategy")
    text_to_mask: str = Field(default="", alias="textToMask")
    confidence: Confidence = "medium"
    context: Optional[str] = None
    # where this field came from: model | text_extraction | local_ocr | pack_size_scan
    source: str = "model"

    @model_validator(mode="before")
    @classmethod
    def _fill_complete_text(cls, data: Any) -> Any:
        if isinstance(data, dict):
            complete = data.get("completeText", data.get("complete_text"))
            if not complete:
                parts = [
                    data.get("fieldPart") or data.get("field_part") or "",
                    data.get("valuePart") or data.get("value_part") or "",
                ]
                data = {**data, "completeText": " ".join(p for p in parts if p).strip()}
        return data

    @field_validator("field_type", "confidence", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("distance", mode="before")
    @classmethod
    def _distance_bucket(cls, v: Any) -> Any:
        # models answer "Low distance", "HIGH", ...
        if isinstance(v, str):
            lowered = v.lower()
            for bucket in ("standalone", "low", "high"):
                if bucket in lowered:
                    return bucket
        return v

    @field_validator("masking_strategy", mode="before")
    @classmethod
    def _strategy(cls, v: Any) -> Any:
        if v is None:
            return "both"
        lowered = str(v).strip().lower()
        return lowered if lowered in get_args(MaskingStrategy) else "both"

    @field_validator("field_name", "field_part", "value_part", "distance_reason", "text_to_mask", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("complete_text")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("completeText must not be empty")
        return v


class DetectionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    found: bool
    fields: List[DetectedField] = Field(default_factory=list, alias="autoDetectedFields")
    confidence: Confidence = Field(default="low", alias="detectionConfidence")
    method: DetectionMethod = "model"
    # what the model itself claimed, kept for diagnostics only
    reported_strategy: Optional[str] = Field(default=None, alias="reportedStrategy")
    context: Optional[str] = None
