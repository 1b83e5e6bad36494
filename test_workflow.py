import json
import os
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest
from google.api_core import exceptions as gexc

from label_modules.config import Settings
from label_modules.errors import NoFieldsFoundError, NotFoundError, ServiceUnavailableError, ValidationError
from label_modules.field_detector import FieldDetector, LocalFieldDetector
from label_modules.geometry import box_to_polygon
from label_modules.ocr import OCRPage, OCRToken
from label_modules.reconciler import OCRReconciler
from label_modules.workflow import WORKFLOW_STEPS, GcsStore, OCRInpaintingWorkflow, ProcessImageRequest, TempWorkspace
from label_modules.workflow.services import MAX_IMAGE_BYTES, validate_image


def tok(id, text, x1, y1, x2, y2):
    return OCRToken(id=id, text=text, coordinates=box_to_polygon((x1, y1, x2, y2)))


def png(width=400, height=200, fmt=".png"):
    ok, buf = cv2.imencode(fmt, np.full((height, width, 3), 255, dtype=np.uint8))
    assert ok
    return buf.tobytes()


LABEL_PAGE = OCRPage(
    full_text="MFG.Dt.03/2024\nBatch No. S24K016",
    tokens=(
        tok(1, "MFG.Dt.03/2024", 10, 10, 150, 30),
        tok(2, "Batch", 10, 100, 60, 120),
        tok(3, "No.", 65, 100, 90, 120),
        tok(4, "S24K016", 300, 100, 380, 120),
    ),
)
DETECTION_REPLY = json.dumps(
    {
        "found": True,
        "detectionConfidence": "high",
        "autoDetectedFields": [
            {"fieldType": "manufacturing_date", "fieldName": "MFG.Dt.", "completeText": "MFG.Dt.03/2024",
             "fieldPart": "MFG.Dt.", "valuePart": "03/2024", "distance": "low"},
            {"fieldType": "batch_number", "fieldName": "Batch No.", "completeText": "Batch No. S24K016",
             "fieldPart": "Batch No.", "valuePart": "S24K016", "distance": "high"},
        ],
    }
)
SELECTION_REPLY = json.dumps(
    {
        "success": True,
        "selectedFields": [
            {"fieldIndex": 0, "fieldType": "manufacturing_date", "selectedOCRIds": [1]},
            {"fieldIndex": 1, "fieldType": "batch_number", "selectedOCRIds": [2, 3, 4]},
        ],
    }
)


@pytest.fixture
def work_root(tmp_path):
    return tmp_path / "work"


def build_workflow(work_root, llm_effect, page=LABEL_PAGE, image=None, restorer=None, **settings):
    llm = MagicMock()
    llm.generate.side_effect = llm_effect
    store = MagicMock()
    store.download.return_value = image if image is not None else png()
    store.upload.side_effect = lambda data, name, content_type, bucket=None: (
        f"https://storage.googleapis.com/{bucket or 'out'}/{name}"
    )
    ocr = MagicMock()
    ocr.recognize.return_value = page
    inpainter = MagicMock()
    inpainter.inpaint.return_value = [png(), png()]
    workflow = OCRInpaintingWorkflow(
        settings=Settings(temp_root=str(work_root), upload_workers=2, **settings),
        store=store,
        ocr=ocr,
        detector=FieldDetector(llm, LocalFieldDetector(proximity_px=300)),
        reconciler=OCRReconciler(llm),
        inpainter=inpainter,
        restorer=restorer,
    )
    return workflow, store, ocr, inpainter


def test_full_run_masks_labels_and_values(work_root):
    workflow, store, ocr, inpainter = build_workflow(work_root, [DETECTION_REPLY, SELECTION_REPLY])
    result = workflow.run(ProcessImageRequest(inputFileName="labels/strip.png", returnMask=True, jobId="t1"))
    body = result.to_response()

    assert body["steps"] == list(WORKFLOW_STEPS)
    assert set(body["stepTimings"]) == set(WORKFLOW_STEPS)
    assert [f["fileName"] for f in body["outputFiles"]] == [
        "strip_mask.png",
        "strip_highlighted.png",
        "strip_1.png",
        "strip_2.png",
    ]
    assert body["outputFiles"][2]["sampleNumber"] == 1
    assert body["outputFiles"][0]["url"] == "https://storage.googleapis.com/out/strip_mask.png"
    assert body["maskingStrategy"]["unifiedStrategy"] == "unified_all_fields_and_values"
    assert [f["textToMask"] for f in body["maskingStrategy"]["fields"]] == ["MFG.Dt.03/2024", "Batch No. S24K016"]
    assert [d["distance"] for d in body["distanceAnalysis"]] == ["low", "high"]
    assert body["originalImage"]["dimensions"] == {"width": 400, "height": 200}
    assert body["processing"]["samplesCount"] == 2
    assert ocr.recognize.call_count == 1

    mask_png = inpainter.inpaint.call_args.args[1]
    mask = cv2.imdecode(np.frombuffer(mask_png, np.uint8), cv2.IMREAD_GRAYSCALE)
    assert mask[5:35, 5:155].min() == 255
    assert mask[110, 200] == 255  # batch label and its far value are one field
    assert mask[60, 200] == 0

    # temp workspace is gone
    assert os.listdir(work_root) == []


def test_restore_details_runs_on_every_sample(work_root):
    restorer = MagicMock()
    restorer.restore.return_value = b"restored"
    workflow, store, _, _ = build_workflow(work_root, [DETECTION_REPLY, SELECTION_REPLY], restorer=restorer)
    workflow.run(
        ProcessImageRequest(inputFileName="strip.png", restoreDetails=True, returnHighlighted=False, outputBucket="x")
    )
    assert restorer.restore.call_count == 2
    uploaded = {c.args[1]: c.args[0] for c in store.upload.call_args_list}
    assert uploaded == {"strip_1.png": b"restored", "strip_2.png": b"restored"}
    assert {c.args[3] for c in store.upload.call_args_list} == {"x"}


def test_return_original_uploads_input_under_its_own_extension(work_root):
    workflow, store, _, _ = build_workflow(work_root, [DETECTION_REPLY, SELECTION_REPLY])
    body = workflow.run(
        ProcessImageRequest(inputFileName="labels/strip.png", returnOriginal=True, returnHighlighted=False)
    ).to_response()

    assert [(f["type"], f["fileName"]) for f in body["outputFiles"]] == [
        ("original", "strip_original.png"),
        ("inpainted", "strip_1.png"),
        ("inpainted", "strip_2.png"),
    ]
    first = store.upload.call_args_list[0]
    assert first.args[0] == store.download.return_value
    assert first.args[1:3] == ("strip_original.png", "image/png")


def test_cleanup_failure_does_not_mask_the_stage_error(work_root):
    page = OCRPage(full_text="Hello", tokens=(tok(1, "Hello", 10, 10, 60, 30),))
    workflow, _, _, _ = build_workflow(work_root, ServiceUnavailableError("quota exceeded"), page=page)
    with patch("label_modules.workflow.services.workspace.shutil.rmtree", side_effect=OSError("device busy")), patch(
        "label_modules.workflow.services.workspace.logger"
    ) as ws_logger:
        with pytest.raises(NoFieldsFoundError) as exc_info:
            workflow.run(ProcessImageRequest(inputFileName="strip.png"))

    assert exc_info.value.details["stepsCompleted"] == ["fetch", "validate"]
    (message,), _ = ws_logger.warning.call_args
    assert "device busy" in message


def test_geometric_policy_reclassifies_before_strategy(work_root):
    reply = json.loads(DETECTION_REPLY)
    reply["autoDetectedFields"][0]["distance"] = "high"
    workflow, _, _, _ = build_workflow(
        work_root, [json.dumps(reply), SELECTION_REPLY], distance_policy="geometric"
    )
    body = workflow.run(ProcessImageRequest(inputFileName="strip.png")).to_response()
    assert [d["distance"] for d in body["distanceAnalysis"]] == ["low", "high"]
    assert body["maskingStrategy"]["unifiedStrategy"] == "unified_all_fields_and_values"


def test_no_fields_anywhere_is_no_fields_found(work_root):
    page = OCRPage(full_text="Hello World", tokens=(tok(1, "Hello", 10, 10, 60, 30), tok(2, "World", 65, 10, 120, 30)))
    workflow, _, ocr, inpainter = build_workflow(work_root, ServiceUnavailableError("quota exceeded"), page=page)
    with pytest.raises(NoFieldsFoundError) as exc_info:
        workflow.run(ProcessImageRequest(inputFileName="strip.png"))

    assert exc_info.value.details["stepsCompleted"] == ["fetch", "validate"]
    inpainter.inpaint.assert_not_called()
    assert os.listdir(work_root) == []


def test_missing_input_is_not_found(work_root):
    workflow, store, _, _ = build_workflow(work_root, [])
    store.download.side_effect = NotFoundError("File 'x.png' not found in bucket 'in'")
    with pytest.raises(NotFoundError) as exc_info:
        workflow.run(ProcessImageRequest(inputFileName="x.png"))
    assert exc_info.value.details["stepsCompleted"] == []


def test_unreadable_input_is_validation_error(work_root):
    workflow, _, _, _ = build_workflow(work_root, [], image=b"definitely not an image")
    with pytest.raises(ValidationError) as exc_info:
        workflow.run(ProcessImageRequest(inputFileName="x.png"))
    assert exc_info.value.details["stepsCompleted"] == ["fetch"]


# ---------- collaborators ----------

def test_validate_image_formats_and_size():
    info = validate_image(png(64, 32))
    assert (info.format, info.width, info.height) == ("PNG", 64, 32)
    with pytest.raises(ValidationError):
        validate_image(png(8, 8, ".bmp"))
    with pytest.raises(ValidationError):
        validate_image(b"\x89PNG" + b"\0" * MAX_IMAGE_BYTES)
    with pytest.raises(ValidationError):
        validate_image(b"")


def test_gcs_store_maps_errors_and_paths():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.download_as_bytes.return_value = b"data"
    blob.public_url = "https://storage.googleapis.com/out/a.png"
    store = GcsStore("in", "out", client=client)

    assert store.download("gs://other/path/a.png") == b"data"
    client.bucket.assert_called_with("other")
    client.bucket.return_value.blob.assert_called_with("path/a.png")

    assert store.upload(b"x", "a.png", "image/png") == "https://storage.googleapis.com/out/a.png"
    blob.upload_from_string.assert_called_with(b"x", content_type="image/png")

    blob.download_as_bytes.side_effect = gexc.NotFound("missing")
    with pytest.raises(NotFoundError):
        store.download("a.png")


def test_temp_workspace_cleans_up_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        with TempWorkspace(str(tmp_path)) as ws:
            path = ws.write("a.png", b"123")
            assert os.path.exists(path)
            raise RuntimeError("boom")
    assert not os.path.exists(path)
    assert os.listdir(tmp_path) == []
