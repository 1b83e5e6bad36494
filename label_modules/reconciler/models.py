from __future__ import annotations

from typing import Any, Dict, List, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..geometry import Polygon, combine_coordinates
from ..ocr.models import OCRToken

ReconciliationMethod = Literal["model_selection", "local_fallback"]


class SelectedField(BaseModel):
    """OCR tokens chosen to cover one detected field's `textToMask`."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, arbitrary_types_allowed=True)

    field_type: str = Field(alias="fieldType")
    field_name: str = Field(default="", alias="fieldName")
    complete_text: str = Field(alias="completeText")
    text_to_mask: str = Field(default="", alias="textToMask")
    masking_strategy: str = Field(default="both", alias="maskingStrategy")
    selected_ocr_ids: List[int] = Field(alias="selectedOCRIds")
    selected_texts: List[OCRToken] = Field(alias="selectedTexts")
    combined_coordinates: Polygon = Field(alias="combinedCoordinates")
    reasoning: str = ""
    confidence: str = "medium"

    @classmethod
    def from_tokens(cls, tokens: Sequence[OCRToken], **attrs: Any) -> "SelectedField":
        """Build from resolved tokens; ids are de-duplicated and sorted, coordinates derived."""
        unique = {t.id: t for t in tokens}
        ordered = [unique[i] for i in sorted(unique)]
        return cls(
            selected_ocr_ids=[t.id for t in ordered],
            selected_texts=ordered,
            combined_coordinates=combine_coordinates(t.coordinates for t in ordered),
            **attrs,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldType": self.field_type,
            "fieldName": self.field_name,
            "completeText": self.complete_text,
            "textToMask": self.text_to_mask,
            "maskingStrategy": self.masking_strategy,
            "selectedOCRIds": list(self.selected_ocr_ids),
            "selectedTexts": [t.to_dict() for t in self.selected_texts],
            "combinedCoordinates": [{"x": x, "y": y} for x, y in self.combined_coordinates],
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }


class ReconciliationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    selected_fields: List[SelectedField] = Field(default_factory=list, alias="selectedFields")
    total_selected_texts: int = Field(default=0, alias="totalSelectedTexts")
    method: ReconciliationMethod = "model_selection"
    confidence: str = "medium"
