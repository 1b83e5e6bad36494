"""
OCRInpaintingWorkflow - one packaging image from bucket to inpainted samples.

Stages run strictly in order:

    fetch -> validate -> detect_fields -> ocr -> reconcile -> build_mask
          -> build_highlight -> inpaint -> upload -> respond

Any stage failure aborts the rest. The error leaves with the list of completed
stages in its details, and the per-request temp workspace is removed on every
exit path.
"""

from __future__ import annotations

import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ...compositor.services.raster import build_highlight, build_mask
from ...config.settings import Settings
from ...errors import InternalError, WorkflowError
from ...field_detector.services.detector import FieldDetector
from ...field_detector.services.distance import apply_geometric_policy
from ...field_detector.services.strategy import plan_masking, resolve_unified_strategy
from ...inpainting.services.imagen import ImagenInpainter
from ...ocr.models import OCRPage
from ...ocr.services.vision import GoogleVisionOCR
from ...reconciler.services.reconciler import OCRReconciler
from ...restore.services.restorer import DetailRestorer, RestoreOptions
from ..models import OutputFile, ProcessImageRequest, WorkflowResult
from .storage import GcsStore
from .validation import validate_image
from .workspace import TempWorkspace
from utils import logger

_EXT_FOR_FORMAT = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}


def memoised_ocr(ocr: GoogleVisionOCR, image_bytes: bytes) -> Callable[[], OCRPage]:
    """OCR supplier that calls the backend at most once."""
    cache: List[OCRPage] = []

    def supplier() -> OCRPage:
        if not cache:
            cache.append(ocr.recognize(image_bytes))
        return cache[0]

    return supplier


def output_names(input_file_name: str, image_format: str) -> Tuple[str, str]:
    base, ext = os.path.splitext(os.path.basename(input_file_name))
    return base, ext or _EXT_FOR_FORMAT.get(image_format, ".png")


class OCRInpaintingWorkflow:
    def __init__(
        self,
        settings: Settings,
        store: GcsStore,
        ocr: GoogleVisionOCR,
        detector: FieldDetector,
        reconciler: OCRReconciler,
        inpainter: ImagenInpainter,
        restorer: Optional[DetailRestorer] = None,
    ):
        self.settings = settings
        self.store = store
        self.ocr = ocr
        self.detector = detector
        self.reconciler = reconciler
        self.inpainter = inpainter
        self.restorer = restorer or DetailRestorer()

    def _restore_samples(self, image_bytes: bytes, mask: bytes, samples: List[bytes], job_id: str) -> List[bytes]:
        restored = []
        options = RestoreOptions(feather_radius=1.0, blend_mode="normal", mask_channel="auto")
        for i, sample in enumerate(samples):
            try:
                restored.append(self.restorer.restore(image_bytes, mask, sample, options))
            except InternalError as e:
                # samples that come back at another resolution are kept as generated
                logger.warning(f"[{job_id}] Sample {i + 1} not restored: {e}")
                restored.append(sample)
        return restored

    def _upload_all(
        self, uploads: List[Tuple[OutputFile, bytes, str]], bucket: Optional[str]
    ) -> List[OutputFile]:
        with ThreadPoolExecutor(max_workers=self.settings.upload_workers) as pool:
            futures = [
                pool.submit(self.store.upload, data, out.file_name, content_type, bucket)
                for out, data, content_type in uploads
            ]
            urls = [f.result() for f in futures]
        return [out.model_copy(update={"url": url}) for (out, _, _), url in zip(uploads, urls)]

    def run(self, request: ProcessImageRequest) -> WorkflowResult:
        """Run every stage for one request.

        Raises:
            WorkflowError: the classified failure, with `details["stepsCompleted"]`.
        """
        job_id = request.job_id or uuid.uuid4().hex[:8]
        started = time.time()
        steps: List[str] = []
        timings: Dict[str, float] = {}

        @contextmanager
        def stage(name: str) -> Iterator[None]:
            with logger.timer(f"[{job_id}] {name}"):
                t0 = time.time()
                yield
                timings[name] = round(time.time() - t0, 3)
            steps.append(name)

        logger.stage(f"[{job_id}] Processing {request.input_file_name}")
        try:
            with TempWorkspace(self.settings.temp_root) as ws:
                with stage("fetch"):
                    image_bytes = self.store.download(request.input_file_name, request.input_bucket)

                with stage("validate"):
                    info = validate_image(image_bytes)
                    base, ext = output_names(request.input_file_name, info.format)
                    ws.write(f"{base}_original{ext}", image_bytes)

                ocr_page = memoised_ocr(self.ocr, image_bytes)
                with stage("detect_fields"):
                    detection = self.detector.detect(image_bytes, ocr_page)

                with stage("ocr"):
                    page = ocr_page()
                    logger.info(f"[{job_id}] OCR returned {len(page.tokens)} texts")

                with stage("reconcile"):
                    fields = detection.fields
                    if self.settings.distance_policy == "geometric":
                        fields = apply_geometric_policy(fields, page.tokens, self.settings.distance_gap_ratio)
                    strategy = resolve_unified_strategy(fields)
                    masked = plan_masking(fields, strategy)
                    logger.info(f"[{job_id}] Unified strategy {strategy.value}; masking {len(masked)} fields")
                    reconciliation = self.reconciler.reconcile(image_bytes, page.tokens, masked, strategy)
                    selected = reconciliation.selected_fields

                with stage("build_mask"):
                    mask = build_mask((info.width, info.height), selected, request.padding)
                    ws.write(f"{base}_mask.png", mask)

                with stage("build_highlight"):
                    highlighted = build_highlight(image_bytes, selected, request.padding)
                    ws.write(f"{base}_highlighted.png", highlighted)

                with stage("inpaint"):
                    samples = self.inpainter.inpaint(image_bytes, mask, request.inpaint_prompt)
                    if request.restore_details:
                        samples = self._restore_samples(image_bytes, mask, samples, job_id)
                    for i, sample in enumerate(samples):
                        ws.write(f"{base}_{i + 1}.png", sample)

                with stage("upload"):
                    uploads: List[Tuple[OutputFile, bytes, str]] = []
                    if request.return_original:
                        uploads.append(
                            (OutputFile(type="original", file_name=f"{base}_original{ext}", url=""), image_bytes, info.mime_type)
                        )
                    if request.return_mask:
                        uploads.append((OutputFile(type="mask", file_name=f"{base}_mask.png", url=""), mask, "image/png"))
                    if request.return_highlighted:
                        uploads.append(
                            (OutputFile(type="highlighted", file_name=f"{base}_highlighted.png", url=""), highlighted, "image/png")
                        )
                    for i, sample in enumerate(samples):
                        uploads.append(
                            (
                                OutputFile(type="inpainted", file_name=f"{base}_{i + 1}.png", url="", sample_number=i + 1),
                                sample,
                                "image/png",
                            )
                        )
                    output_files = self._upload_all(uploads, request.output_bucket)

                with stage("respond"):
                    elapsed = time.time() - started
                    result = WorkflowResult(
                        job_id=job_id,
                        input_file_name=request.input_file_name,
                        image=info,
                        detection={
                            "found": True,
                            "method": detection.method,
                            "detectionConfidence": detection.confidence,
                            "context": detection.context,
                        },
                        detected_fields=[f.model_dump(by_alias=True) for f in fields],
                        selected_fields=[s.to_dict() for s in selected],
                        unified_strategy=strategy.value,
                        masked_fields=[
                            {
                                "fieldType": f.field_type,
                                "maskingStrategy": f.masking_strategy,
                                "textToMask": f.text_to_mask,
                            }
                            for f in masked
                        ],
                        output_files=output_files,
                        steps=list(steps),
                        step_timings=dict(timings),
                        processing={
                            "inpaintPrompt": request.inpaint_prompt,
                            "padding": request.padding,
                            "processingTime": f"{elapsed:.2f}s",
                            "method": "ocr_selection_inpainting",
                            "detectionMethod": detection.method,
                            "reconciliationMethod": reconciliation.method,
                            "distancePolicy": self.settings.distance_policy,
                            "detectedFieldsCount": len(fields),
                            "totalSelectedTexts": reconciliation.total_selected_texts,
                            "samplesCount": len(samples),
                            "restoreDetails": request.restore_details,
                        },
                        processed_at=datetime.now(timezone.utc).isoformat(),
                    )
        except WorkflowError as e:
            e.details.setdefault("stepsCompleted", list(steps))
            e.details.setdefault("jobId", job_id)
            logger.error(f"[{job_id}] {e.error_type}: {e}")
            raise
        except Exception as e:
            logger.error(f"[{job_id}] Unexpected error: {e}")
            raise InternalError(str(e), details={"stepsCompleted": list(steps), "jobId": job_id}) from e

        # the respond stage is only recorded once its block has closed
        result = result.model_copy(update={"steps": list(steps), "step_timings": dict(timings)})
        logger.success(f"[{job_id}] Done in {time.time() - started:.2f}s with {len(samples)} samples")
        return result
