"""
Prompt templates used by the detection and reconciliation services.

Placeholders use the `{{name}}` form and are filled by `render()`, so the JSON
examples inside the templates need no brace escaping. You can tweak these
without touching the service code itself.
"""

from __future__ import annotations

import json
from typing import Any

FIELD_DETECTION_PROMPT = """
Analyze this product packaging image and detect these regulated label fields if they exist.
Labels may be printed in English or Hindi:

{{field_catalogue}}

For EVERY field you find, report the complete text (label + separator + value), the label
part, the value part and any Hindi text printed with it.

Then classify the VISUAL DISTANCE between each field's label and its value:
- "low": label and value are visually adjacent or connected with no separating gap.
  This includes text printed as one run ("MFG.Dt.03/2024") and label/value stacked
  vertically with no gap between the lines.
- "high": label and value are separated by significant whitespace or a columnar layout
  (labels in one column, values in another column).
- "standalone": a pack-size value printed with no label at all (for example "per 10 tablets").
Explain the classification in "distanceReason".

MASKING STRATEGY (decided for the whole image, not per field):
- If ANY field has "low" distance, use "unified_all_fields_and_values": every field's label
  AND value is masked, plus the pack-size value, plus the inclusive-of-taxes marker.
- Only if EVERY labelled field has "high" distance, use "values_only": mask values only,
  plus the pack-size value; the inclusive-of-taxes marker is NOT masked.
- Pack-size values are ALWAYS masked; use "always_include_pack_size" for pack_size entries.
Set "textToMask" to exactly the text that must disappear under that strategy.

Example: "MFG.Dt.03/2024" (low) and "Batch No." / "S24K016" in separate columns (high)
in the same image -> at least one field is low, so the unified strategy is
"unified_all_fields_and_values" and BOTH labels and values are masked.

Respond ONLY with JSON in this shape:
{
  "found": true,
  "unifiedStrategy": "unified_all_fields_and_values",
  "detectionConfidence": "high",
  "autoDetectedFields": [
    {
      "fieldType": "manufacturing_date",
      "fieldName": "MFG.Dt.",
      "completeText": "MFG.Dt.03/2024",
      "fieldPart": "MFG.Dt.",
      "valuePart": "03/2024",
      "hindiText": null,
      "distance": "low",
      "distanceReason": "label and value printed as one run with no gap",
      "maskingStrategy": "unified_all_fields_and_values",
      "textToMask": "MFG.Dt.03/2024",
      "confidence": "high"
    },
    {
      "fieldType": "pack_size",
      "fieldName": "",
      "completeText": "per 10 tablets",
      "fieldPart": "",
      "valuePart": "per 10 tablets",
      "hindiText": null,
      "distance": "standalone",
      "distanceReason": "quantity printed without a label",
      "maskingStrategy": "always_include_pack_size",
      "textToMask": "per 10 tablets",
      "confidence": "medium"
    }
  ]
}
If none of the fields are present respond with {"found": false, "autoDetectedFields": []}.
"""

OCR_SELECTION_PROMPT = """
You are an expert at analyzing OCR results from product packaging. I have:

1. FIELDS TO MASK from a previous analysis (masking strategy: {{strategy}}):
{{fields}}

2. ALL OCR TEXTS from the image, with their bounding boxes as [x, y, width, height]:
{{tokens}}

YOUR TASK: for each field, select the OCR text IDs that together reconstruct exactly its
"textToMask" - no more, no less.

IMPORTANT RULES:
- A field might be one OCR text (ID 5 = "Mfg.Date:11/2024").
- A field might be several OCR texts (ID 5 = "Mfg.Date:", ID 6 = "11/2024").
- OCR often FRAGMENTS one value: a date as "03", "/", "2024" or a price as "₹", "95", "00".
  Select EVERY fragment; never stop at the first one.
- When the text does not appear verbatim, use the boxes: fragments of one value sit next to
  each other on the same line, and numeric neighbours that together form a plausible date
  or price belong together.
- Only use IDs from the list above.

Respond ONLY with JSON in this shape:
{
  "success": true,
  "selectedFields": [
    {
      "fieldIndex": 0,
      "fieldType": "mrp",
      "completeText": "MRP ₹95.00",
      "selectedOCRIds": [12, 13, 14, 15],
      "reasoning": "label in 12, value fragmented across 13-15"
    }
  ],
  "totalSelectedTexts": 4,
  "confidence": "high"
}
"""

INPAINT_REMOVAL_SUFFIX = (
    "Remove text completely and fill with clean background that matches the surrounding "
    "packaging material. Do not generate new text, numbers, or characters. Fill the masked "
    "area with the same background texture and color as the surrounding area."
)


def render(template: str, **dynamic: Any) -> str:
    """Replace `{{key}}` placeholders; lists and dicts are JSON-encoded."""
    out = template
    for k, v in dynamic.items():
        if isinstance(v, (list, dict)):
            v = json.dumps(v, ensure_ascii=False)
        out = out.replace(f"{{{{{k}}}}}", str(v))
    return out.strip()
