import json
from unittest.mock import MagicMock

import pytest

from label_modules.errors import NoFieldsFoundError, ServiceUnavailableError
from label_modules.field_detector import DetectedField, FieldDetector, LocalFieldDetector, UnifiedStrategy
from label_modules.field_detector.services import (
    apply_geometric_policy,
    extract_fields_from_text,
    find_standalone_pack_sizes,
    parse_detection_reply,
    plan_masking,
    resolve_unified_strategy,
)
from label_modules.geometry import box_to_polygon
from label_modules.ocr import OCRPage, OCRToken


def tok(id, text, x1, y1, x2, y2):
    return OCRToken(id=id, text=text, coordinates=box_to_polygon((x1, y1, x2, y2)))


def field(**kw):
    return DetectedField.model_validate(kw)


# MFG inline on the first line, "Batch No." with its value in a far column
TWO_COLUMN_TOKENS = [
    tok(1, "MFG.Dt.03/2024", 10, 10, 150, 30),
    tok(2, "Batch", 10, 100, 60, 120),
    tok(3, "No.", 65, 100, 90, 120),
    tok(4, "S24K016", 300, 100, 380, 120),
]
PACK_ONLY_TOKENS = [
    tok(1, "per", 10, 10, 40, 30),
    tok(2, "10", 45, 10, 65, 30),
    tok(3, "tablets", 70, 10, 130, 30),
]


# ---------- reply parsing ----------

def test_parse_detection_reply_reads_fenced_json():
    reply = "```json\n" + json.dumps(
        {
            "found": True,
            "unifiedStrategy": "values_only",
            "detectionConfidence": "HIGH",
            "autoDetectedFields": [
                {
                    "fieldType": "MRP",
                    "fieldName": "MRP",
                    "fieldPart": "MRP",
                    "valuePart": "₹95.00",
                    "distance": "Low distance",
                    "maskingStrategy": "something-else",
                    "confidence": "high",
                },
                {"fieldType": "not_a_field", "completeText": "x"},
            ],
        }
    ) + "\n```"
    result = parse_detection_reply(reply)
    assert result.found and result.method == "model"
    assert result.confidence == "high"
    assert len(result.fields) == 1
    mrp = result.fields[0]
    assert mrp.field_type == "mrp"
    assert mrp.complete_text == "MRP ₹95.00"
    assert mrp.distance == "low"
    assert mrp.masking_strategy == "both"
    assert result.reported_strategy == "values_only"


def test_found_false_is_an_answer_not_a_parse_failure():
    result = parse_detection_reply('{"found": false, "autoDetectedFields": []}')
    assert result is not None
    assert result.found is False
    assert result.method == "model_declined"


@pytest.mark.parametrize("found", ['"false"', '"False"', '"no"'])
def test_quoted_false_is_a_decline(found):
    result = parse_detection_reply('{"found": %s, "autoDetectedFields": []}' % found)
    assert result is not None
    assert result.found is False
    assert result.method == "model_declined"


def test_quoted_true_is_read_as_found():
    reply = json.dumps(
        {
            "found": "true",
            "autoDetectedFields": [{"fieldType": "mrp", "fieldPart": "MRP", "valuePart": "95.00", "distance": "low"}],
        }
    )
    result = parse_detection_reply(reply)
    assert result.found and [f.field_type for f in result.fields] == ["mrp"]


def test_unreadable_reply_returns_none():
    assert parse_detection_reply("I could not find anything useful.") is None
    assert parse_detection_reply('{"found": true, "autoDetectedFields": []}') is None


def test_free_text_extraction_scans_lines():
    text = "Here is what I see:\nMFG DATE: 03/2024\nBatch No: A123\nnothing else"
    result = extract_fields_from_text(text)
    types = {f.field_type: f for f in result.fields}
    assert set(types) == {"manufacturing_date", "batch_number"}
    assert types["manufacturing_date"].value_part == "03/2024"
    assert types["batch_number"].value_part == "A123"
    assert result.method == "text_extraction"
    assert result.confidence == "medium"


# ---------- unified strategy ----------

def test_one_low_distance_field_masks_everything():
    fields = [
        field(fieldType="manufacturing_date", completeText="MFG.Dt.03/2024", fieldPart="MFG.Dt.",
              valuePart="03/2024", distance="low"),
        field(fieldType="batch_number", completeText="Batch No. S24K016", fieldPart="Batch No.",
              valuePart="S24K016", distance="high"),
        field(fieldType="inclusive_of_taxes", completeText="Incl. of all taxes", distance="standalone"),
    ]
    strategy = resolve_unified_strategy(fields)
    assert strategy is UnifiedStrategy.ALL_FIELDS_AND_VALUES

    planned = {f.field_type: f for f in plan_masking(fields, strategy)}
    assert planned["manufacturing_date"].text_to_mask == "MFG.Dt.03/2024"
    assert planned["batch_number"].text_to_mask == "Batch No. S24K016"
    assert planned["inclusive_of_taxes"].text_to_mask == "Incl. of all taxes"
    assert {f.masking_strategy for f in planned.values()} == {"unified_all_fields_and_values"}


def test_all_high_distance_masks_values_and_drops_marker():
    fields = [
        field(fieldType="expiry_date", completeText="EXP 02/2026", fieldPart="EXP", valuePart="02/2026",
              distance="high"),
        field(fieldType="pack_size", completeText="Net Qty 100 ml", fieldPart="Net Qty", valuePart="100 ml",
              distance="high"),
        field(fieldType="inclusive_of_taxes", completeText="Incl. of all taxes", distance="standalone"),
    ]
    strategy = resolve_unified_strategy(fields)
    assert strategy is UnifiedStrategy.VALUES_ONLY

    planned = {f.field_type: f for f in plan_masking(fields, strategy)}
    assert "inclusive_of_taxes" not in planned
    assert planned["expiry_date"].text_to_mask == "02/2026"
    assert planned["expiry_date"].masking_strategy == "values_only"
    assert planned["pack_size"].text_to_mask == "100 ml"
    assert planned["pack_size"].masking_strategy == "always_include_pack_size"


def test_standalone_pack_size_does_not_decide_strategy():
    fields = [field(fieldType="pack_size", completeText="per 10 tablets", valuePart="per 10 tablets",
                    distance="standalone")]
    assert resolve_unified_strategy(fields) is UnifiedStrategy.VALUES_ONLY
    planned = plan_masking(fields, UnifiedStrategy.VALUES_ONLY)
    assert planned[0].text_to_mask == "per 10 tablets"


# ---------- local OCR matching ----------

def test_local_detector_inline_and_columnar_fields():
    fields = LocalFieldDetector(proximity_px=300).detect(TWO_COLUMN_TOKENS)
    by_type = {f.field_type: f for f in fields}
    assert set(by_type) == {"manufacturing_date", "batch_number"}

    mfg = by_type["manufacturing_date"]
    assert mfg.value_part == "03/2024"
    assert mfg.distance == "low"

    batch = by_type["batch_number"]
    assert batch.field_part == "Batch No."
    assert batch.value_part == "S24K016"
    assert batch.distance == "high"
    assert resolve_unified_strategy(fields) is UnifiedStrategy.ALL_FIELDS_AND_VALUES


def test_local_detector_respects_proximity_radius():
    fields = LocalFieldDetector(proximity_px=100).detect(TWO_COLUMN_TOKENS)
    assert [f.field_type for f in fields] == ["manufacturing_date"]


def test_local_detector_joins_price_fragments():
    tokens = [
        tok(1, "MRP", 10, 10, 50, 30),
        tok(2, "₹", 55, 10, 65, 30),
        tok(3, "95", 68, 10, 88, 30),
        tok(4, "00", 92, 10, 112, 30),
    ]
    (mrp,) = LocalFieldDetector().detect(tokens)
    assert mrp.field_type == "mrp"
    assert mrp.value_part == "₹ 95 00"
    assert mrp.distance == "low"


def test_standalone_pack_size_scan():
    (pack,) = find_standalone_pack_sizes(PACK_ONLY_TOKENS)
    assert pack.field_type == "pack_size"
    assert pack.complete_text == "per 10 tablets"
    assert pack.distance == "standalone"
    assert pack.masking_strategy == "always_include_pack_size"


def test_strength_is_not_a_pack_size():
    tokens = [tok(1, "500", 10, 10, 40, 30), tok(2, "mg", 45, 10, 65, 30)]
    assert find_standalone_pack_sizes(tokens) == []


# ---------- distance policy ----------

def test_geometric_policy_reclassifies_from_token_gaps():
    fields = [
        field(fieldType="manufacturing_date", completeText="MFG.Dt.03/2024", fieldPart="MFG.Dt.",
              valuePart="03/2024", distance="high"),
        field(fieldType="batch_number", completeText="Batch No. S24K016", fieldPart="Batch No.",
              valuePart="S24K016", distance="low"),
        field(fieldType="mrp", completeText="MRP 10", fieldPart="MRP", valuePart="10", distance="high"),
    ]
    out = {f.field_type: f for f in apply_geometric_policy(fields, TWO_COLUMN_TOKENS, gap_ratio=1.0)}
    assert out["manufacturing_date"].distance == "low"
    assert out["batch_number"].distance == "high"
    # not on the image: the model's answer stands
    assert out["mrp"].distance == "high"


# ---------- detector tiers ----------

def _detector(reply=None, error=None):
    llm = MagicMock()
    if error is not None:
        llm.generate.side_effect = error
    else:
        llm.generate.return_value = reply
    return FieldDetector(llm, LocalFieldDetector(proximity_px=300)), llm


def test_detector_uses_model_reply_and_adds_standalone_pack_size():
    reply = json.dumps(
        {
            "found": True,
            "autoDetectedFields": [
                {"fieldType": "expiry_date", "completeText": "EXP 02/2026", "fieldPart": "EXP",
                 "valuePart": "02/2026", "distance": "high"},
            ],
        }
    )
    detector, _ = _detector(reply=reply)
    ocr = MagicMock(return_value=OCRPage(full_text="per 10 tablets", tokens=tuple(PACK_ONLY_TOKENS)))
    result = detector.detect(b"img", ocr)

    assert result.method == "model"
    assert [f.field_type for f in result.fields] == ["expiry_date", "pack_size"]
    assert resolve_unified_strategy(result.fields) is UnifiedStrategy.VALUES_ONLY


def test_declined_reply_still_finds_standalone_pack_size():
    detector, _ = _detector(reply='{"found": false, "autoDetectedFields": []}')
    ocr = MagicMock(return_value=OCRPage(full_text="per 10 tablets", tokens=tuple(PACK_ONLY_TOKENS)))
    result = detector.detect(b"img", ocr)

    assert result.method == "model_declined"
    (pack,) = result.fields
    assert pack.field_type == "pack_size"
    assert pack.distance == "standalone"
    planned = plan_masking(result.fields, resolve_unified_strategy(result.fields))
    assert planned[0].text_to_mask == "per 10 tablets"


def test_unreadable_reply_falls_back_to_text_extraction():
    detector, _ = _detector(reply="Sure! EXP DATE: 02/2026 and MRP: Rs 95")
    ocr = MagicMock(return_value=OCRPage(full_text="", tokens=()))
    result = detector.detect(b"img", ocr)
    assert result.method == "text_extraction"
    assert {f.field_type for f in result.fields} == {"expiry_date", "mrp"}


def test_model_outage_falls_back_to_local_matching():
    detector, _ = _detector(error=ServiceUnavailableError("overloaded"))
    ocr = MagicMock(return_value=OCRPage(full_text="", tokens=tuple(TWO_COLUMN_TOKENS)))
    result = detector.detect(b"img", ocr)
    assert result.method == "local_ocr"
    assert resolve_unified_strategy(result.fields) is UnifiedStrategy.ALL_FIELDS_AND_VALUES
    assert ocr.call_count >= 1


def test_outage_with_nothing_local_raises_no_fields_found():
    detector, _ = _detector(error=ServiceUnavailableError("overloaded"))
    ocr = MagicMock(
        return_value=OCRPage(full_text="Hello World", tokens=(tok(1, "Hello", 0, 0, 40, 20), tok(2, "World", 45, 0, 90, 20)))
    )
    with pytest.raises(NoFieldsFoundError):
        detector.detect(b"img", ocr)
