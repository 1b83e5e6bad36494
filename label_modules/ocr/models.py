from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..geometry import Box, Polygon, bounding_box


@dataclass(frozen=True)
class OCRToken:
    id: int  # 1-based, stable within one OCR call
    text: str
    coordinates: Polygon  # 4 points, clockwise from top-left
    confidence: Optional[float] = None

    @property
    def box(self) -> Box:
        return bounding_box(self.coordinates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "coordinates": [{"x": x, "y": y} for x, y in self.coordinates],
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class OCRPage:
    full_text: str
    tokens: Tuple[OCRToken, ...] = field(default_factory=tuple)
